import sentry_sdk
import streamlit as st

from infrastructure.observability import setup_observability
setup_observability()

import auth
from use_cases import navigation_gate
from utils import session_manager
from views import home_view, login_view, onboarding_view


def _tag_sentry_user(snapshot):
    if snapshot.user is not None:
        sentry_sdk.set_user({"id": snapshot.user.id})
    else:
        sentry_sdk.set_user(None)


def handle_oauth_callback(services, query_params):
    """
    Finish a social sign-in when the provider redirects back with `?code=`.
    The exchange emits SIGNED_IN, so the gate moves on the same render.
    """
    code = query_params.get("code")
    error = query_params.get("error_description") or query_params.get("error")
    if not code and not error:
        return None
    flow_id = query_params.get("flow")
    query_params.clear()
    if error:
        st.error(f"Social sign-in was cancelled: {error}")
        return None
    result = auth.complete_social_sign_in(services.auth_provider, services.profiles, code, flow_id)
    if not result.ok:
        st.error(result.message)
    return result


def render_auth_flow(services, snapshot):
    route = navigation_gate.select_auth_route(snapshot, st.session_state.get("pending_email"))
    if route == "LOADING":
        with st.spinner("Loading..."):
            services.session_store.initialize()
        st.rerun()
    elif route == "WELCOME":
        if snapshot.sync_error:
            st.warning(snapshot.sync_error)
        login_view.render_welcome_screen(services)
    elif route == "VERIFY":
        login_view.render_verify_screen(services)
    else:
        onboarding_view.render_onboarding(services)
    return route


def render_root(services):
    """Render whichever tree the gate selects for the current session state."""
    snapshot = services.session_store.snapshot()
    _tag_sentry_user(snapshot)

    if not snapshot.is_authenticated and st.session_state.get("wizard") is not None:
        # signed out elsewhere (expiry, another tab): drop onboarding progress
        session_manager.reset_auth_state()

    flow = navigation_gate.resolve_flow(snapshot)
    if flow == "APP":
        home_view.render_home(services)
        return flow
    render_auth_flow(services, snapshot)
    return flow


def main():
    st.set_page_config(page_title="Ringside", page_icon="🥊", layout="centered")

    # Health Check (Basic load-balancer heartbeat)
    if st.query_params.get("health") == "1":
        st.write({"status": "ok"})
        st.stop()

    services = session_manager.get_services()
    if services is None:
        st.error("🚨 Backend is not configured: set SUPABASE_URL and SUPABASE_ANON_KEY in secrets.toml.")
        st.stop()

    handle_oauth_callback(services, st.query_params)
    render_root(services)


if __name__ == "__main__":
    main()
