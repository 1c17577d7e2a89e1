# ui/tasks_panel.py
import streamlit as st

from models.schemas import TaskRead
from models.task import Category, Priority
from reconcile import TaskBoard, is_temp_id
from utils.dates import format_due, to_datetime
from utils.overview import category_summary, overview_df
from utils.progress import is_overdue, subtask_counts

PRIORITY_BADGE = {Priority.LOW: "🔵 low", Priority.MEDIUM: "🟡 medium", Priority.HIGH: "🔴 high"}
CATEGORY_BADGE = {Category.PERSONAL: "🟣 personal", Category.WORK: "⚫ work", Category.STUDY: "🟢 study"}


def render_progress(board: TaskBoard):
    tasks = board.tasks
    done = sum(1 for t in tasks if t.completed)
    pct = board.progress()
    c1, c2 = st.columns([3, 1])
    c1.markdown(f"**Progress** · {done} of {len(tasks)} tasks completed")
    c2.markdown(f"<div style='text-align:right;font-size:1.6rem;font-weight:700'>{round(pct)}%</div>",
                unsafe_allow_html=True)
    st.progress(int(round(pct)))


def render_new_task_form(board: TaskBoard):
    with st.form("new_task", clear_on_submit=True):
        t_text = st.text_input("Add a new task…", placeholder="Add a new task…", label_visibility="collapsed")
        with st.expander("More options"):
            t_desc = st.text_area("Description (optional)", height=80)
            c1, c2, c3 = st.columns(3)
            t_pri = c1.selectbox("Priority", list(Priority), index=1, format_func=lambda p: p.value.title())
            t_cat = c2.selectbox("Category", list(Category), format_func=lambda c: c.value.title())
            t_due = c3.date_input("Due date", value=None)
        submitted = st.form_submit_button("Add task")
    if submitted:
        if not t_text.strip():
            st.warning("Please enter a task.")
            return
        board.add(t_text, t_desc, t_pri, t_cat, t_due)


def _edit_form(board: TaskBoard, task: TaskRead):
    due = to_datetime(task.due_date)
    with st.form(f"edit_{task.id}"):
        e_text = st.text_input("Task title", value=task.text, key=f"et_{task.id}")
        e_desc = st.text_area("Description (optional)", value=task.description or "", height=70,
                              key=f"ed_{task.id}")
        c1, c2, c3 = st.columns(3)
        e_pri = c1.selectbox("Priority", list(Priority), index=list(Priority).index(task.priority),
                             format_func=lambda p: f"{p.value.title()} Priority", key=f"ep_{task.id}")
        e_cat = c2.selectbox("Category", list(Category), index=list(Category).index(task.category),
                             format_func=lambda c: c.value.title(), key=f"ec_{task.id}")
        e_due = c3.date_input("Due date", value=due.date() if due else None, key=f"edd_{task.id}")
        save = st.form_submit_button("Save")
    if save:
        if not e_text.strip():
            st.warning("Task title cannot be empty.")
            return
        board.edit(task.id, text=e_text.strip(), description=e_desc.strip(),
                   priority=e_pri, category=e_cat, due_date=e_due)
        st.rerun()


def _subtasks(board: TaskBoard, task: TaskRead):
    done, total = subtask_counts(task)
    st.markdown(f"**Subtasks** · {done}/{total}")
    for sub in task.subtasks:
        c1, c2, c3 = st.columns([6, 1, 1])
        c1.markdown(f"~~{sub.text}~~" if sub.completed else sub.text)
        c2.button("↺" if sub.completed else "✓", key=f"stg_{task.id}_{sub.id}",
                  on_click=board.toggle_subtask, args=(task.id, sub.id))
        c3.button("🗑", key=f"sdel_{task.id}_{sub.id}",
                  on_click=board.delete_subtask, args=(task.id, sub.id))
    with st.form(f"new_sub_{task.id}", clear_on_submit=True):
        s_text = st.text_input("Add subtask…", key=f"stxt_{task.id}", label_visibility="collapsed",
                               placeholder="Add subtask…")
        if st.form_submit_button("Add subtask") and s_text.strip():
            board.add_subtask(task.id, s_text)
            st.rerun()


def render_task(board: TaskBoard, task: TaskRead):
    with st.container(border=True):
        c1, c2, c3 = st.columns([1, 8, 1])
        c1.button("↺" if task.completed else "○", key=f"tg_{task.id}", help="Toggle complete",
                  on_click=board.toggle, args=(task.id,))
        title = f"~~{task.text}~~" if task.completed else f"**{task.text}**"
        if is_temp_id(task.id) or board.is_pending(task.id):
            title += " ⏳"
        c2.markdown(title)
        c3.button("🗑", key=f"del_{task.id}", help="Delete", on_click=board.delete, args=(task.id,))

        meta = [PRIORITY_BADGE[task.priority], CATEGORY_BADGE[task.category]]
        if task.due_date is not None:
            label = f"📅 {format_due(task.due_date)}"
            if is_overdue(task):
                label = f":red[{label} (Overdue)]"
            meta.append(label)
        st.caption(" · ".join(meta))

        with st.expander("Details"):
            if task.description:
                st.write(task.description)
            _subtasks(board, task)
        with st.expander("Edit"):
            _edit_form(board, task)


def render_task_list(board: TaskBoard):
    tasks = board.sorted_tasks()
    if not tasks:
        st.info("No tasks yet. Add your first task above to get started!")
        return
    for t in tasks:
        render_task(board, t)


def render_overview(board: TaskBoard):
    tasks = board.tasks
    if not tasks:
        st.info("Nothing to summarize yet.")
        return
    st.dataframe(overview_df(tasks), use_container_width=True, hide_index=True)
    st.dataframe(category_summary(tasks), use_container_width=True, hide_index=True)
