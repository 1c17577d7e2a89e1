# ui/auth_panel.py
import streamlit as st

import auth
from errors import EmailInUse, InvalidCredentials, RegistrationInvalid


def render_auth_panel() -> None:
    """Sign-in / register screen. Puts an auth.Identity in session_state on success."""
    _, col, _ = st.columns([1, 2.2, 1])
    with col:
        st.markdown("<h2 style='text-align:center;'>Taskdeck</h2>", unsafe_allow_html=True)
        st.caption("Stay organized and get things done.")
        tab_in, tab_up = st.tabs(["Sign in", "Register"])

        with tab_in:
            with st.form("login_form", clear_on_submit=False):
                email = st.text_input("Email", placeholder="you@example.com")
                password = st.text_input("Password", type="password")
                submitted = st.form_submit_button("Sign in", use_container_width=True)
            if submitted:
                try:
                    st.session_state["identity"] = auth.authenticate(email, password)
                except InvalidCredentials as e:
                    st.error(str(e))
                else:
                    st.session_state.pop("board", None)
                    st.rerun()

        with tab_up:
            with st.form("register_form", clear_on_submit=False):
                r_name = st.text_input("Name")
                r_email = st.text_input("Email", placeholder="you@example.com", key="r_email")
                r_password = st.text_input("Password", type="password", key="r_password",
                                           help=f"At least {auth.MIN_PASSWORD} characters.")
                r_submit = st.form_submit_button("Create account", use_container_width=True)
            if r_submit:
                try:
                    auth.register(r_email, r_password, r_name)
                except RegistrationInvalid as e:
                    st.error(str(e))
                    for msg in e.field_errors.values():
                        st.warning(msg)
                except EmailInUse as e:
                    st.error(str(e))
                else:
                    st.success("Registration successful! Please log in.")
