"""
Resummarize Frontend

Streamlit dashboard for the Resummarize API: sign-in, note editing,
AI summaries, action items and the notes-aware chat assistant.

Run locally:
    streamlit run ui/main.py
"""

from __future__ import annotations

import os
from typing import Any

import httpx
import streamlit as st

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

API_URL = os.getenv("API_URL", "http://localhost:8000")
API_V1 = f"{API_URL}/api/v1"

# AI calls can take a while on long note sets
DEFAULT_TIMEOUT = 10.0
AI_TIMEOUT = 60.0

SUMMARY_TYPES = ["brief", "detailed", "actionable", "todo", "keypoints"]
SORT_ORDERS = ["default", "priority", "date"]
PRIORITY_BADGES = {"high": "🔴 high", "medium": "🟠 medium", "low": "🟢 low"}


# ---------------------------------------------------------------------------
# Page Configuration
# ---------------------------------------------------------------------------

st.set_page_config(
    page_title="Resummarize",
    page_icon="📝",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown(
    """
    <style>
    .main-title {
        font-size: 2.3rem;
        font-weight: 700;
        color: #1E3A5F;
        margin-bottom: 0.25rem;
    }
    .subtitle {
        font-size: 1.05rem;
        color: #6B7280;
        margin-bottom: 1.5rem;
    }
    .note-meta {
        color: #9CA3AF;
        font-size: 0.8rem;
    }
    .item-meta {
        color: #6B7280;
        font-size: 0.85rem;
    }
    </style>
    """,
    unsafe_allow_html=True,
)


# ---------------------------------------------------------------------------
# Session State Initialization
# ---------------------------------------------------------------------------


def init_session_state() -> None:
    """Initialize session state variables."""
    if "access_token" not in st.session_state:
        st.session_state.access_token = None
    if "user_email" not in st.session_state:
        st.session_state.user_email = None


init_session_state()


# ---------------------------------------------------------------------------
# API Client Functions
# ---------------------------------------------------------------------------


class ApiError(Exception):
    """API answered with an error status."""

    def __init__(self, status_code: int, detail: Any) -> None:
        if isinstance(detail, dict):
            message = detail.get("message") or detail.get("detail") or str(detail)
            self.retryable = bool(detail.get("retryable"))
        else:
            message = str(detail)
            self.retryable = status_code >= 500
        super().__init__(message)
        self.status_code = status_code


def api(
    method: str,
    path: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    **kwargs: Any,
) -> Any:
    """
    Call the API with the signed-in user's token.

    Raises:
        ApiError: Non-2xx response (body ``detail`` used as the message).
        httpx.RequestError: Network failure.
    """
    headers = {}
    if st.session_state.access_token:
        headers["Authorization"] = f"Bearer {st.session_state.access_token}"
    with httpx.Client(base_url=API_V1, timeout=timeout, headers=headers) as client:
        response = client.request(method, path, **kwargs)
    if response.status_code >= 400:
        try:
            body = response.json()
        except ValueError:
            raise ApiError(response.status_code, response.text) from None
        detail = body.get("detail", body)
        if isinstance(detail, str) and "retryable" in body:
            detail = {"message": detail, "retryable": body["retryable"]}
        raise ApiError(response.status_code, detail)
    if response.status_code == 204 or not response.content:
        return None
    return response.json()


def check_api_health() -> bool:
    """Check if the API is reachable."""
    try:
        with httpx.Client(timeout=5.0) as client:
            response = client.get(f"{API_URL}/health")
            return response.status_code == 200
    except httpx.RequestError:
        return False


def show_error(prefix: str, error: Exception) -> None:
    if isinstance(error, ApiError) and error.status_code == 401:
        st.session_state.access_token = None
        st.warning("Your session has expired. Please sign in again.")
        return
    hint = " Please try again." if getattr(error, "retryable", False) else ""
    st.error(f"{prefix}: {error}{hint}")


# ---------------------------------------------------------------------------
# UI Components
# ---------------------------------------------------------------------------


def render_sidebar() -> bool:
    """Render API status and the account panel. Returns True when signed in."""
    with st.sidebar:
        if check_api_health():
            st.success("API Connected", icon="🟢")
        else:
            st.error("API Unreachable", icon="🔴")
            st.caption(f"Endpoint: `{API_URL}`")
            return False

        st.divider()

        if st.session_state.access_token:
            st.markdown(f"Signed in as **{st.session_state.user_email}**")
            if st.button("Sign out", use_container_width=True):
                try:
                    api("POST", "/auth/signout")
                except (ApiError, httpx.RequestError) as e:
                    st.caption(f"Sign-out request failed ({e}); local session cleared.")
                st.session_state.access_token = None
                st.session_state.user_email = None
                st.rerun()
            return True

        mode = st.radio("Account", ["Sign in", "Sign up"], horizontal=True)
        with st.form("auth"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button(mode, type="primary")

        if submitted:
            path = "/auth/signin" if mode == "Sign in" else "/auth/signup"
            try:
                result = api("POST", path, json={"email": email, "password": password})
            except (ApiError, httpx.RequestError) as e:
                st.error(f"{mode} failed: {e}")
                return False
            if result.get("session"):
                st.session_state.access_token = result["session"]["access_token"]
                st.session_state.user_email = email
                st.rerun()
            else:
                st.info("Check your email to confirm your account, then sign in.")
        return False


def render_notes() -> list[dict[str, Any]]:
    """Note list with search, inline editing and delete confirmation."""
    query = st.text_input("Search notes", placeholder="Search titles and content...")

    col_new, col_refresh = st.columns([1, 1])
    if col_new.button("➕ New note", use_container_width=True):
        try:
            api("POST", "/notes/", json={"title": "", "content": ""})
        except (ApiError, httpx.RequestError) as e:
            show_error("Failed to create note", e)
    refresh = col_refresh.button("🔄 Refresh", use_container_width=True)

    try:
        if query.strip():
            notes = api("GET", "/notes/search", params={"q": query})
        else:
            notes = api("GET", "/notes/", params={"refresh": refresh})
    except (ApiError, httpx.RequestError) as e:
        show_error("Failed to fetch notes", e)
        return []

    if not notes:
        st.info("No notes yet. Create your first one.")
        return []

    for note in notes:
        with st.expander(note["title"], expanded=False):
            title = st.text_input("Title", note["title"], key=f"title-{note['id']}")
            content = st.text_area(
                "Content", note["content"], height=200, key=f"content-{note['id']}"
            )
            st.markdown(
                f'<p class="note-meta">Updated {note["updated_at"]}</p>',
                unsafe_allow_html=True,
            )

            col_save, col_confirm, col_delete = st.columns([1, 1, 1])
            if col_save.button("💾 Save", key=f"save-{note['id']}"):
                try:
                    api(
                        "PATCH",
                        f"/notes/{note['id']}",
                        json={"title": title, "content": content},
                    )
                    st.success("Saved")
                except (ApiError, httpx.RequestError) as e:
                    show_error("Failed to save changes", e)

            confirmed = col_confirm.checkbox("Confirm delete", key=f"confirm-{note['id']}")
            if col_delete.button("🗑️ Delete", key=f"delete-{note['id']}", disabled=not confirmed):
                try:
                    api("DELETE", f"/notes/{note['id']}")
                    st.rerun()
                except (ApiError, httpx.RequestError) as e:
                    show_error("Failed to delete note", e)

            if st.button("✨ Summarize this note", key=f"summary-{note['id']}"):
                with st.spinner("Summarizing..."):
                    try:
                        result = api(
                            "GET",
                            f"/ai/notes/{note['id']}/summary",
                            params={"type": "brief"},
                            timeout=AI_TIMEOUT,
                        )
                        st.info(result["summary"])
                    except (ApiError, httpx.RequestError) as e:
                        show_error("Failed to generate summary", e)
    return notes


def render_summaries() -> None:
    """Summary of all notes in a chosen style, plus insights."""
    summary_type = st.selectbox("Summary style", SUMMARY_TYPES)
    regenerate = st.checkbox("Regenerate (ignore cached result)")

    col_summary, col_insights = st.columns(2)
    if col_summary.button("Summarize all notes", type="primary", use_container_width=True):
        with st.spinner("Summarizing..."):
            try:
                result = api(
                    "POST",
                    "/ai/summary",
                    json={"type": summary_type, "refresh": regenerate},
                    timeout=AI_TIMEOUT,
                )
                st.text(result["summary"])
            except (ApiError, httpx.RequestError) as e:
                show_error("Failed to generate summary", e)

    if col_insights.button("Generate insights", use_container_width=True):
        with st.spinner("Analyzing..."):
            try:
                result = api(
                    "POST", "/ai/insights", json={"refresh": regenerate}, timeout=AI_TIMEOUT
                )
                st.text(result["insights"])
            except (ApiError, httpx.RequestError) as e:
                show_error("Failed to generate insights", e)


def render_action_items() -> None:
    """Action items extracted from all notes, with completion toggles."""
    col_sort, col_refresh = st.columns([2, 1])
    order = col_sort.selectbox("Sort by", SORT_ORDERS)
    refresh = col_refresh.button("🔄 Regenerate", use_container_width=True)

    try:
        items = api(
            "GET",
            "/ai/action-items",
            params={"sort": order, "refresh": refresh},
            timeout=AI_TIMEOUT,
        )
    except ApiError as e:
        if e.status_code == 404:
            st.info("Add some notes to extract action items.")
            return
        show_error("Failed to extract action items", e)
        return
    except httpx.RequestError as e:
        show_error("Failed to extract action items", e)
        return

    for item in items:
        checked = st.checkbox(item["text"], value=item["completed"], key=f"item-{item['id']}")
        if checked != item["completed"]:
            try:
                api("POST", f"/ai/action-items/{item['id']}/toggle")
            except (ApiError, httpx.RequestError) as e:
                show_error("Failed to update item", e)

        meta = [
            PRIORITY_BADGES.get(item["priority"], ""),
            f"📅 {item['due_date']}" if item["due_date"] else "",
            item["category"] or "",
            f"from {item['source']}" if item["source"] else "",
        ]
        line = " · ".join(part for part in meta if part)
        if line:
            st.markdown(f'<p class="item-meta">{line}</p>', unsafe_allow_html=True)


def render_chat() -> None:
    """Chat assistant: notes mode answers from your notes, therapist mode listens."""
    try:
        state = api("GET", "/chat/")
    except (ApiError, httpx.RequestError) as e:
        show_error("Failed to load chat", e)
        return

    col_mode, col_clear = st.columns([3, 1])
    modes = ["notes", "therapist"]
    mode = col_mode.radio(
        "Mode", modes, index=modes.index(state["mode"]), horizontal=True
    )
    try:
        if mode != state["mode"]:
            state = api("POST", "/chat/mode", json={"mode": mode})
        if col_clear.button("Clear chat", use_container_width=True):
            state = api("DELETE", "/chat/messages")
    except (ApiError, httpx.RequestError) as e:
        show_error("Failed to update chat", e)

    for message in state["messages"]:
        role = "assistant" if message["role"] == "model" else "user"
        with st.chat_message(role):
            st.text(message["content"])

    if prompt := st.chat_input("Ask about your notes..."):
        with st.chat_message("user"):
            st.text(prompt)
        with st.chat_message("assistant"):
            with st.spinner("Thinking..."):
                try:
                    state = api(
                        "POST", "/chat/messages", json={"content": prompt}, timeout=AI_TIMEOUT
                    )
                    st.text(state["messages"][-1]["content"])
                    if state["last_error"]:
                        st.caption(f"⚠️ {state['last_error']}")
                except (ApiError, httpx.RequestError) as e:
                    show_error("Failed to send message", e)


def render_dashboard() -> None:
    st.markdown('<p class="main-title">📝 Resummarize</p>', unsafe_allow_html=True)
    st.markdown(
        '<p class="subtitle">Your notes, summarized, with an assistant that has read them</p>',
        unsafe_allow_html=True,
    )

    notes_tab, summary_tab, items_tab, chat_tab = st.tabs(
        ["Notes", "Summaries", "Action items", "Chat"]
    )
    with notes_tab:
        render_notes()
    with summary_tab:
        render_summaries()
    with items_tab:
        render_action_items()
    with chat_tab:
        render_chat()


# ---------------------------------------------------------------------------
# Main Entry Point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main application entry point."""
    if not render_sidebar():
        st.markdown('<p class="main-title">📝 Resummarize</p>', unsafe_allow_html=True)
        st.info("Sign in from the sidebar to see your notes.")
        return
    render_dashboard()


if __name__ == "__main__":
    main()
