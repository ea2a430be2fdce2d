from datetime import date

import streamlit as st

from use_cases.onboarding_models import (
    DIVISIONS,
    GENDERS,
    MATCH_RESULTS,
    SPORTS,
    BasicProfileInput,
    ContactInfoInput,
    FanPreferencesInput,
    MatchRecordInput,
    OnboardingValidationError,
    OrganizerProfileInput,
    RoleSelectionInput,
    SocialLinkInput,
)
from services import sports_record_service
from utils import session_manager

ROLE_LABELS = {
    "fan": "Fan: follow events and fighters",
    "fighter": "Fighter: get found by matchmakers",
    "organizer": "Organizer: run events and manage fighters",
}


def _show(result):
    if result.ok:
        st.rerun()
    else:
        st.error(result.message)


def _build(factory, **kwargs):
    """Construct a step input, surfacing the validation message instead of raising."""
    try:
        return factory(**kwargs)
    except OnboardingValidationError as e:
        st.error(e.message)
        return None


def render_basic_profile(wizard):
    st.subheader("Complete your account")
    with st.form("basic_profile_form"):
        first_name = st.text_input("First name *")
        last_name = st.text_input("Last name *")
        dob = st.date_input("Date of birth", value=None, min_value=date(1920, 1, 1), max_value=date.today())
        gender = st.selectbox("Gender", GENDERS, index=None, format_func=lambda g: g.replace("_", " ").capitalize())
        country = st.text_input("Country")
        avatar = st.text_input("Profile image URL")
        instagram = st.text_input("Instagram URL")
        submitted = st.form_submit_button("Next")
    if submitted:
        links = []
        if instagram.strip():
            link = _build(SocialLinkInput, platform="Instagram", url=instagram)
            if link is None:
                return
            links.append(link)
        data = _build(
            BasicProfileInput,
            first_name=first_name,
            last_name=last_name,
            date_of_birth=dob.isoformat() if dob else None,
            gender=gender,
            country=country,
            profile_image_url=avatar,
            social_links=tuple(links),
        )
        if data is not None:
            with st.spinner("Saving..."):
                _show(wizard.submit_basic_profile(data))


def render_role_selection(wizard):
    st.subheader("Select your role")
    role = st.radio("I am a", list(ROLE_LABELS), format_func=ROLE_LABELS.get, index=None)
    if st.button("Continue", type="primary"):
        selection = _build(RoleSelectionInput, role=role)
        if selection is not None:
            with st.spinner("Saving..."):
                _show(wizard.select_role(selection))


def render_fan(wizard):
    st.subheader("Stay in the loop")
    allow_notifications = st.toggle("Notifications about fights and events")
    allow_location = st.toggle("Use my location to find events nearby")
    if st.button("Complete", type="primary"):
        prefs = FanPreferencesInput(allow_notifications=allow_notifications, allow_location=allow_location)
        with st.spinner("Saving..."):
            _show(wizard.complete_fan(prefs))


def _render_contact_form(wizard):
    with st.expander("Contact person *", expanded=wizard.contact is None):
        with st.form("contact_form"):
            full_name = st.text_input("Full name *")
            phone = st.text_input("Phone *")
            email = st.text_input("Email (optional)")
            organisation = st.text_input("Organisation (optional)")
            submitted = st.form_submit_button("Save & close")
        if submitted:
            contact = _build(ContactInfoInput, full_name=full_name, phone=phone, email=email, organisation=organisation)
            if contact is not None:
                _show(wizard.save_contact(contact))
    if wizard.contact is not None:
        st.caption(f"Contact: {wizard.contact.full_name} ({wizard.contact.phone})")


def render_fighter(wizard):
    st.subheader("Complete your fighter profile")
    st.caption("Make it easy for matchmakers to find you.")
    totals = sports_record_service.overall(wizard.sports_records)
    st.write(sports_record_service.format_record(totals))

    c_sport, c_add = st.columns([4, 1])
    sport = c_sport.selectbox("Sports you compete in *", SPORTS, index=None)
    if c_add.button("Add", use_container_width=True) and sport:
        wizard.add_sport(sport)
    for name in list(wizard.sports):
        if st.button(f"✕ {name}", key=f"remove_sport_{name}"):
            wizard.remove_sport(name)
            st.rerun()

    weight_division = st.text_input("Weight division (kg) *", value="")
    weight_range = st.text_input("Weight range (± kg) *", value="")
    height = st.text_input("Height (cm) *", value="")
    gym = st.text_input("Gym *", value="")
    division = st.selectbox("Division", DIVISIONS, index=None)

    _render_contact_form(wizard)

    with st.expander("Add match"):
        with st.form("match_form", clear_on_submit=True):
            match_date = st.date_input("Date", value=None)
            opponent = st.text_input("Opponent")
            event = st.text_input("Event")
            match_division = st.selectbox("Division", DIVISIONS, index=None, key="match_division")
            match_sport = st.selectbox("Sport", SPORTS, index=None, key="match_sport")
            result = st.selectbox("Result", MATCH_RESULTS, index=None)
            submitted = st.form_submit_button("Add match")
        if submitted:
            match = _build(
                MatchRecordInput,
                sport=match_sport,
                result=result,
                opponent_name=opponent,
                event_name=event,
                match_date=match_date.isoformat() if match_date else None,
                division=match_division,
            )
            if match is not None:
                wizard.add_match(match)
                st.rerun()
    for sport_name, record in wizard.sports_records.items():
        st.caption(f"{sport_name}: {sports_record_service.format_record(record)}")

    if st.button("Complete", type="primary"):
        with st.spinner("Saving your profile..."):
            _show(wizard.complete_fighter(weight_division, weight_range, height, gym, division=division))


def render_organizer(wizard):
    st.subheader("Complete your organizer profile")
    with st.form("organizer_form"):
        job_title = st.text_input("Job title *")
        organisation = st.text_input("Organisation *")
        st.markdown("**Contact person**")
        full_name = st.text_input("Full name")
        phone = st.text_input("Phone")
        fighter_ids = st.text_area("Managed fighter IDs (one per line)")
        submitted = st.form_submit_button("Complete")
    if submitted:
        contact = None
        if full_name.strip() or phone.strip():
            contact = _build(ContactInfoInput, full_name=full_name, phone=phone)
            if contact is None:
                return
        data = _build(
            OrganizerProfileInput,
            job_title=job_title,
            organisation=organisation,
            contact=contact,
            managed_fighter_ids=tuple(fighter_ids.splitlines()),
        )
        if data is not None:
            with st.spinner("Saving your profile..."):
                _show(wizard.complete_organizer(data))


STEP_RENDERERS = {
    "BASIC_PROFILE": render_basic_profile,
    "ROLE": render_role_selection,
    "FAN": render_fan,
    "FIGHTER": render_fighter,
    "ORGANIZER": render_organizer,
}


def render_onboarding(services):
    wizard = session_manager.get_wizard(services)
    snapshot = services.session_store.snapshot()
    if snapshot.sync_error:
        st.warning(snapshot.sync_error)
        if st.button("Retry"):
            services.session_store.refresh()
            st.rerun()
        return

    st.progress(wizard.progress)
    renderer = STEP_RENDERERS.get(wizard.step)
    if renderer is not None:
        renderer(wizard)
