import streamlit as st
import requests

from bithab.config import load_settings
from bithab.preferences import Preferences

settings = load_settings()
API_URL = settings.api_url

# Set page config must be the first Streamlit command
st.set_page_config(
    page_title="BitHab",
    layout="wide",
    page_icon="🎯",
    initial_sidebar_state="expanded"
)

# -------------------------------
# SESSION STATE
# -------------------------------
if "user_id" not in st.session_state:
    st.session_state.user_id = None
if "view" not in st.session_state:
    st.session_state.view = None
if "pending_confirm" not in st.session_state:
    st.session_state.pending_confirm = None
if "open_day" not in st.session_state:
    st.session_state.open_day = None
if "preferences" not in st.session_state:
    # read once per browser session, written on toggle
    st.session_state.preferences = Preferences(settings.preferences_file)

# -------------------------------
# API HELPERS
# -------------------------------
def safe_json(resp):
    try:
        return resp.json()
    except ValueError:
        return {"success": False, "error": f"Bad response ({resp.status_code})"}

def open_session_api(user_id):
    resp = requests.post(f"{API_URL}/session/open", json={"user_id": user_id})
    return safe_json(resp)

def view_api(user_id):
    resp = requests.post(f"{API_URL}/view", json={"user_id": user_id})
    return safe_json(resp)

def intent_api(user_id, kind, payload=None):
    resp = requests.post(f"{API_URL}/intent",
                         json={"user_id": user_id, "kind": kind, "payload": payload or {}})
    return safe_json(resp)

def send(kind, **payload):
    """Send an intent and keep the returned view; destructive intents ask first."""
    result = intent_api(st.session_state.user_id, kind, payload)
    if result.get("confirm"):
        st.session_state.pending_confirm = {"kind": kind, "payload": payload, "message": result["confirm"]}
    elif result.get("signed_out"):
        st.session_state.user_id = None
        st.session_state.view = None
    elif not result.get("success"):
        st.error(result.get("error", "Something went wrong"))
    if result.get("view"):
        st.session_state.view = result["view"]
    return result

# -------------------------------
# RENDERING
# -------------------------------
def color_dot(color):
    return f'<span style="color:{color}; font-size:1.1rem;">●</span>'

def dot_html(dot):
    if dot["logged_marker"]:
        return '<span style="font-size:1.1rem;">✔</span>'
    return color_dot(dot["color"])

def render_confirmation():
    pending = st.session_state.pending_confirm
    if not pending:
        return
    st.warning(pending["message"])
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Yes", key="confirm_yes", use_container_width=True, type="primary"):
            st.session_state.pending_confirm = None
            send(pending["kind"], **pending["payload"], confirmed=True)
            st.rerun()
    with col2:
        if st.button("No", key="confirm_no", use_container_width=True):
            st.session_state.pending_confirm = None
            st.rerun()

def render_activities(view):
    st.markdown("### Activities")
    if not view["activities"]:
        st.caption("Add a main activity to begin.")
    for activity in view["activities"]:
        arrow = "▼" if activity["expanded"] else "►"
        col1, col2 = st.columns([5, 1])
        with col1:
            if st.button(f"{arrow} {activity['name']}", key=f"act_{activity['id']}", use_container_width=True,
                         type="primary" if activity["selected"] else "secondary"):
                send("select-activity", activity_id=activity["id"])
                st.rerun()
        with col2:
            if st.button("×", key=f"del_{activity['id']}"):
                send("remove-activity", activity_id=activity["id"])
                st.rerun()
        if not activity["expanded"]:
            continue
        for sub in activity["sub_activities"]:
            c1, c2 = st.columns([5, 1])
            with c1:
                st.markdown(f"&nbsp;&nbsp;{color_dot(sub['color'])} {sub['name']}", unsafe_allow_html=True)
            with c2:
                if st.button("×", key=f"del_{sub['id']}"):
                    send("remove-sub-activity", activity_id=activity["id"], sub_activity_id=sub["id"])
                    st.rerun()
        with st.form(key=f"sub_form_{activity['id']}", clear_on_submit=True):
            color = st.color_picker("Color", value="#3B82F6", key=f"color_{activity['id']}")
            name = st.text_input("Add sub-activity...", key=f"sub_{activity['id']}")
            if st.form_submit_button("Add") and name.strip():
                send("add-sub-activity", activity_id=activity["id"], name=name, color=color)
                st.rerun()
    with st.form(key="activity_form", clear_on_submit=True):
        name = st.text_input("Add activity...")
        if st.form_submit_button("Add") and name.strip():
            send("add-activity", name=name)
            st.rerun()

def render_log_modal(date_key):
    result = intent_api(st.session_state.user_id, "open-day", {"date_key": date_key})
    if not result.get("success"):
        st.session_state.open_day = None
        st.error(result.get("error", "Cannot log this day"))
        return
    modal = result["modal"]
    st.markdown(f"#### Log for {modal['date_key']} · {modal['activity_name']}")
    cols = st.columns(max(len(modal["pills"]), 1) + 1)
    for col, pill in zip(cols, modal["pills"]):
        with col:
            label = f"{'✅ ' if pill['selected'] else ''}{pill['name']}"
            if st.button(label, key=f"pill_{pill['id']}", use_container_width=True):
                send("toggle-log", date_key=modal["date_key"], entity_id=pill["id"])
                st.session_state.open_day = None
                st.rerun()
    with cols[-1]:
        if st.button("Close", key="close_modal"):
            st.session_state.open_day = None
            st.rerun()

def render_calendar(view):
    calendar_view = view["calendar"]
    if calendar_view is None:
        st.info("Select an activity to see its calendar.")
        return
    col1, col2, col3 = st.columns([1, 4, 1])
    with col1:
        if st.button("‹", key="prev_month"):
            send("prev-month")
            st.rerun()
    with col2:
        st.markdown(f"## {calendar_view['title']}")
        st.markdown(f"### {calendar_view['activity_name']}")
    with col3:
        if st.button("›", key="next_month"):
            send("next-month")
            st.rerun()

    header = st.columns(7)
    for col, name in zip(header, calendar_view["weekdays"]):
        col.markdown(f"**{name}**")
    days = calendar_view["days"]
    for start in range(0, len(days), 7):
        cols = st.columns(7)
        for col, day in zip(cols, days[start:start + 7]):
            with col:
                label = str(day["day"]) if day["in_current_month"] else f"·{day['day']}·"
                if st.button(label, key=f"day_{day['date_key']}", use_container_width=True):
                    st.session_state.open_day = day["date_key"]
                    st.rerun()
                st.markdown("".join(dot_html(d) for d in day["dots"]) or "&nbsp;",
                            unsafe_allow_html=True)

    if st.session_state.open_day:
        render_log_modal(st.session_state.open_day)

def render_goals(view):
    st.markdown("### Goals")
    if not view["goals"]:
        st.caption("Add a goal to get started.")
    for goal in view["goals"]:
        col1, col2 = st.columns([5, 1])
        with col1:
            checked = st.checkbox(goal["name"], value=goal["completed"], key=f"goal_{goal['id']}")
            if checked != goal["completed"]:
                send("toggle-goal", goal_id=goal["id"])
                st.rerun()
        with col2:
            if st.button("×", key=f"del_{goal['id']}"):
                send("remove-goal", goal_id=goal["id"])
                st.rerun()
    with st.form(key="goal_form", clear_on_submit=True):
        name = st.text_input("Add goal...")
        if st.form_submit_button("Add") and name.strip():
            send("add-goal", name=name)
            st.rerun()

# -------------------------------
# PAGES
# -------------------------------
def sign_in_page():
    # the identity provider hands us a user id; sign-in itself happens elsewhere
    st.markdown("# BitHab")
    user_id = st.text_input("User ID")
    if st.button("Continue", type="primary") and user_id.strip():
        result = open_session_api(user_id.strip())
        if result.get("success"):
            st.session_state.user_id = user_id.strip()
            st.session_state.view = result["view"]
            st.rerun()
        else:
            st.error(result.get("error", "Could not open session"))

def main():
    preferences = st.session_state.preferences
    if preferences.theme == "dark":
        st.markdown("<style>.stApp { background-color: #111827; color: #F9FAFB; }</style>",
                    unsafe_allow_html=True)

    theme_icon = "☀️" if preferences.theme == "dark" else "🌙"
    if st.sidebar.button(theme_icon, key="theme_toggle"):
        preferences.toggle_theme()
        st.rerun()

    if st.session_state.user_id is None:
        sign_in_page()
        return

    result = view_api(st.session_state.user_id)
    if result.get("success"):
        st.session_state.view = result["view"]
    elif st.session_state.view is None:
        st.error(result.get("error", "Session unavailable"))
        st.session_state.user_id = None
        return
    view = st.session_state.view

    if st.sidebar.button("🚪 Logout", use_container_width=True):
        send("sign-out")
        st.rerun()

    for notice in view["notices"]:
        if notice["level"] == "error":
            st.error(notice["message"])
        else:
            st.info(notice["message"])
    render_confirmation()

    left, middle, right = st.columns([2, 4, 2])
    with left:
        render_activities(view)
    with middle:
        render_calendar(view)
    with right:
        render_goals(view)

if __name__ == "__main__":
    main()
