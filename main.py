# main.py

#============================================================#
#                          Taskdeck                          #
#============================================================#
# Created     : 2026-10-19                                   #
# Version     : V1.0.0                                       #
#------------------------------------------------------------#
# Purpose     : Taskdeck is a personal task tracker with     #
#               priorities, categories, due dates and        #
#               subtasks (SQLite/Postgres via SQLModel)      #
#============================================================#

import streamlit as st
from loguru import logger

import actions
import db
from errors import Unauthenticated
from logging_setup import setup_logging
from reconcile import TaskBoard, default_executor
from ui.auth_panel import render_auth_panel
from ui.tasks_panel import render_new_task_form, render_overview, render_progress, render_task_list

st.set_page_config(
    page_title="Taskdeck",
    page_icon="✅",
    layout="centered",
    initial_sidebar_state="collapsed",
)

setup_logging()


def force_rerun():
    fn = getattr(st, "rerun", None) or getattr(st, "experimental_rerun", None)
    if fn:
        fn()


@st.cache_resource
def _init_db_once():
    db.init_db()
    return True

_init_db_once()


def sign_out():
    st.session_state.pop("identity", None)
    st.session_state.pop("board", None)


def get_board(identity) -> TaskBoard:
    board = st.session_state.get("board")
    if board is None or board.identity != identity:
        board = TaskBoard.load(identity, actions, default_executor())
        st.session_state["board"] = board
    return board


@st.fragment(run_every=2)
def sync_watcher():
    """Rerun the page when background writes have changed the board."""
    board = st.session_state.get("board")
    if board is not None and board.version != st.session_state.get("rendered_version"):
        force_rerun()


# ======================  AUTH GATE  ======================
identity = st.session_state.get("identity")
if not identity:
    render_auth_panel()
    st.stop()

try:
    board = get_board(identity)
except Unauthenticated:
    logger.info("session lost its identity, back to sign-in")
    sign_out()
    force_rerun()
    st.stop()

# ======================  TASKS  ======================
h1, h2 = st.columns([4, 1])
with h1:
    st.title("My Tasks")
    st.caption(f"Signed in as **{identity.email}**")
with h2:
    st.button("Sign out", on_click=sign_out, use_container_width=True)

for failure in board.drain_failures():
    st.toast(f"Could not {failure.action} task: {failure.message}", icon="⚠️")

render_progress(board)
render_new_task_form(board)

tab_list, tab_overview = st.tabs(["Tasks", "Overview"])
with tab_list:
    render_task_list(board)
with tab_overview:
    render_overview(board)

if not board.is_pending():
    if st.sidebar.button("Reload from server"):
        board.refresh()
        force_rerun()

st.session_state["rendered_version"] = board.version
sync_watcher()
