import streamlit as st

from infrastructure.backend.errors import BackendError
from services import sports_record_service
from utils import session_manager


def render_home(services):
    snapshot = services.session_store.snapshot()
    user = snapshot.user

    with st.sidebar:
        st.caption(user.email if user else "")
        if st.button("Sign out", key="logout_btn", type="secondary"):
            session_manager.logout()

    try:
        profile = services.profiles.get_profile_with_records(user.id) if user else None
    except BackendError:
        st.error("We couldn't load your profile. Please try again.")
        return

    if profile is None:
        st.title("Welcome")
        return

    name = " ".join(p for p in (profile.get("first_name"), profile.get("last_name")) if p)
    st.title(f"👋 {name or 'Welcome back'}")
    st.caption(f"Role: {profile.get('role', 'fan')}")

    records = {
        row["sport_name"]: {k: row.get(k, 0) for k in ("wins", "losses", "draws")}
        for row in profile.get("sports_records") or []
    }
    if records:
        st.subheader("Record")
        st.write(sports_record_service.format_record(sports_record_service.overall(records)))
        for sport, record in records.items():
            st.caption(f"{sport}: {sports_record_service.format_record(record)}")
