import logging

import streamlit as st

import auth
from infrastructure.backend.errors import BackendError
from use_cases import bootstrap
from use_cases.onboarding_flow import OnboardingWizard

log = logging.getLogger(__name__)

"""
SESSION STATE CONTRACT

Streamlit reruns the script on every interaction; these keys survive reruns
for one browser session.

services: AppServices | None
    adapters + SessionStore for this browser session, built once by get_services()
    default: None
    owner: session_manager

startup_reason: str
    why startup stopped, shown instead of the app
    default: ""
    owner: session_manager

pending_email: str | None
    email a one-time code was sent to; moves the auth tree to the verify screen
    default: None
    owner: login_view

wizard: OnboardingWizard | None
    in-memory onboarding progress, dropped on sign-out
    default: None
    owner: onboarding_view
"""


def init_session_state():
    if "services" not in st.session_state:
        st.session_state.services = None
    if "startup_reason" not in st.session_state:
        st.session_state.startup_reason = ""
    if "pending_email" not in st.session_state:
        st.session_state.pending_email = None
    if "wizard" not in st.session_state:
        st.session_state.wizard = None


def get_services():
    """Scoped provider: one AppServices per browser session, built on first use."""
    init_session_state()
    if st.session_state.services is None:
        result = bootstrap.run_startup()
        if result.status == "STOP":
            log.warning(f"Startup stopped: {result.reason}")
            st.session_state.startup_reason = result.reason
            return None
        st.session_state.services = result.services
        st.session_state.startup_reason = ""
    return st.session_state.services


def get_wizard(services) -> OnboardingWizard:
    if st.session_state.wizard is None:
        wizard = OnboardingWizard(services.session_store, services.profiles)
        user_id = services.session_store.current_user_id
        if user_id is not None:
            try:
                wizard.resume_from_profile(services.profiles.get_profile(user_id))
            except BackendError as e:
                log.warning(f"Could not load profile to resume onboarding: {e}")
        st.session_state.wizard = wizard
    return st.session_state.wizard


def reset_auth_state():
    st.session_state.pending_email = None
    st.session_state.wizard = None


def logout():
    services = st.session_state.get("services")
    if services is not None:
        auth.sign_out(services.auth_provider)
    reset_auth_state()
    st.rerun()


def teardown():
    """Release the session store listener, e.g. when the browser session ends."""
    services = st.session_state.get("services")
    if services is not None:
        services.session_store.close()
        st.session_state.services = None
    reset_auth_state()
