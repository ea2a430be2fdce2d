import streamlit as st

import auth
from infrastructure.backend.supabase_auth import SOCIAL_PROVIDERS


def render_welcome_screen(services):
    st.title("🥊 Ringside")
    st.caption("Find fights, fighters and events near you.")

    with st.form("email_form", clear_on_submit=False):
        email = st.text_input("Email")
        submitted = st.form_submit_button("Continue with email")
        if submitted:
            with st.spinner("Sending code..."):
                result = auth.request_code(services.auth_provider, email)
            if result.ok:
                st.session_state.pending_email = result.value
                st.rerun()
            else:
                st.error(result.message)

    st.divider()
    if not services.settings.redirect_url:
        st.caption("Social sign-in is unavailable: AUTH_REDIRECT_URL is not set.")
        return
    st.caption("Or continue with")
    columns = st.columns(len(SOCIAL_PROVIDERS))
    for column, provider in zip(columns, SOCIAL_PROVIDERS):
        result = auth.start_social_sign_in(services.auth_provider, provider, services.settings.redirect_url)
        if not result.ok:
            column.error(result.message)
            continue
        column.link_button(provider.capitalize(), result.value, use_container_width=True)


def render_verify_screen(services):
    email = st.session_state.pending_email
    st.title("Check your inbox")
    st.caption(f"Enter the {auth.OTP_LENGTH}-digit code we sent to {email}.")

    with st.form("verify_form", clear_on_submit=True):
        code = st.text_input("Code", max_chars=auth.OTP_LENGTH)
        submitted = st.form_submit_button("Verify")
        if submitted:
            with st.spinner("Verifying..."):
                result = auth.verify_code(services.auth_provider, services.profiles, email, code)
            if result.ok:
                st.session_state.pending_email = None
                st.rerun()
            else:
                st.error(result.message)

    c_resend, c_back = st.columns(2)
    if c_resend.button("Resend code", use_container_width=True):
        result = auth.resend_code(services.auth_provider, email)
        if result.ok:
            st.success(result.message)
        else:
            st.error(result.message)
    if c_back.button("Use another email", use_container_width=True):
        st.session_state.pending_email = None
        st.rerun()
