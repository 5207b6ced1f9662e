"""Streamlit UI for Travault - documents, timeline, reminders and chat.

Run with: streamlit run ui/app.py
"""

# Add project root to sys.path for imports to work when run via streamlit
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import os  # noqa: E402
from datetime import date  # noqa: E402

import streamlit as st  # noqa: E402

from ui.chat_store import ChatStore  # noqa: E402
from ui.helpers import (  # noqa: E402
    CATEGORIES,
    FILTERS,
    REQUEST_ERRORS,
    analyze_risk,
    apply_upload_result,
    build_document_patch,
    build_stats,
    build_timeline,
    create_reminder,
    delete_document,
    delete_reminder,
    fetch_calendar,
    fetch_documents,
    fetch_reminders,
    filter_documents,
    merge_reminders,
    relative_day,
    send_chat,
    update_document,
    upload_document,
)
from ui.state import AppState  # noqa: E402

# Configuration
BACKEND_URL = os.environ.get("TRAVAULT_API_URL", "http://localhost:8000")
CHAT_DIR = os.environ.get("TRAVAULT_CHAT_DIR", str(_ROOT / "var"))

PRIORITY_BADGES = {"High": "🔴", "Medium": "🟡", "Low": "🔵"}
CATEGORY_ICONS = {
    "Ticket": "✈️",
    "Reservation": "🏨",
    "Contract": "📝",
    "Visa": "🛂",
    "Passport": "🪪",
    "ID": "🪪",
    "Insurance": "🛡️",
    "Other": "📄",
}

# Page config
st.set_page_config(page_title="Travault", page_icon="🧳", layout="wide")

# Initialize session state
if "app" not in st.session_state:
    st.session_state.app = AppState()
    st.session_state.loaded = False

app: AppState = st.session_state.app
chat_store = ChatStore(CHAT_DIR)


def refresh() -> None:
    """Reload documents and reminders from the API."""
    try:
        app.replace_documents(fetch_documents(BACKEND_URL))
        app.replace_reminders(fetch_reminders(BACKEND_URL))
        app.clear_error()
    except REQUEST_ERRORS as e:
        app.set_error(f"Could not load your documents: {e}")


if not st.session_state.loaded:
    refresh()
    st.session_state.loaded = True

# Title
st.title("🧳 Travault")
st.markdown("*Your travel documents, dates and obligations in one place*")

if app.error:
    st.error(f"❌ {app.error}")
if app.notice:
    st.info(app.notice)

stats = build_stats(app.documents, app.reminders)
col_a, col_b, col_c = st.columns(3)
col_a.metric("Documents", stats["documents"])
col_b.metric("Upcoming reminders", stats["upcoming_reminders"])
col_c.metric("Expiring in 30 days", stats["expiring_soon"])
st.divider()

# Main layout - 3 columns
col_left, col_center, col_right = st.columns([1, 2, 1.3])

# =============================================================================
# LEFT COLUMN - UPLOAD + CALENDAR
# =============================================================================
with col_left:
    st.subheader("📤 Upload")

    with st.form("upload_form", clear_on_submit=True):
        uploaded = st.file_uploader(
            "Ticket, visa, contract or insurance",
            type=["pdf", "png", "jpg", "jpeg", "webp", "docx", "txt"],
        )
        language = st.text_input("Translate to", value="English")
        submitted = st.form_submit_button("Analyze", type="primary", use_container_width=True)

        if submitted and uploaded is not None:
            with st.spinner("Reading your document..."):
                try:
                    result = upload_document(
                        BACKEND_URL,
                        uploaded.name,
                        uploaded.getvalue(),
                        uploaded.type,
                        target_language=language.strip() or None,
                    )
                except REQUEST_ERRORS as e:
                    app.set_error(str(e))
                else:
                    apply_upload_result(app, BACKEND_URL, uploaded.name, result)
            st.rerun()

    st.divider()
    st.subheader("📅 Calendar")
    try:
        st.download_button(
            "Export .ics",
            data=fetch_calendar(BACKEND_URL),
            file_name="travault_schedule.ics",
            mime="text/calendar",
            use_container_width=True,
        )
    except REQUEST_ERRORS as e:
        st.caption(f"_Calendar unavailable: {e}_")

# =============================================================================
# CENTER COLUMN - DOCUMENTS + TIMELINE
# =============================================================================
with col_center:
    st.subheader("🗂️ Documents")

    tab = st.radio("Filter", list(FILTERS), horizontal=True, label_visibility="collapsed")
    search = st.text_input("Search titles", placeholder="Search titles...")
    visible = filter_documents(app.documents, tab, search)

    if not visible:
        st.info("No documents match. Upload one on the left.")

    for doc in visible:
        meta = doc["metadata"]
        icon = CATEGORY_ICONS.get(meta["category"], "📄")
        when = meta.get("event_date") or meta.get("expiry_date") or ""
        with st.expander(f"{icon} {meta['title']}  ·  {meta['category']}  {when}"):
            if doc.get("preview_image"):
                st.image(doc["preview_image"], width=240)
            st.markdown(meta.get("summary") or "_No summary_")
            if meta.get("location"):
                st.caption(f"📍 {meta['location']}")
            if meta.get("reference_number"):
                st.caption(f"🔖 {meta['reference_number']}")

            if meta.get("important_details"):
                st.markdown("**Details**")
                for item in meta["important_details"]:
                    st.markdown(f"- {item}")
            if meta.get("policy_rules"):
                st.markdown("**Rules**")
                for rule in meta["policy_rules"]:
                    st.markdown(f"- {rule}")
            if meta.get("translated_content"):
                with st.popover("Translation"):
                    st.text(meta["translated_content"])
            if doc.get("file_url"):
                st.link_button("Open original", doc["file_url"])

            risk = meta.get("risk_analysis")
            if risk:
                st.markdown(f"**Risk score:** {risk['score']}/100. {risk['summary']}")
                for factor in risk.get("factors", []):
                    badge = PRIORITY_BADGES.get(factor["severity"], "⚪")
                    st.caption(f"{badge} {factor['risk']}: {factor['description']}")

            with st.form(f"edit_{doc['document_id']}"):
                title = st.text_input("Title", value=meta["title"])
                current = meta["category"] if meta["category"] in CATEGORIES else "Other"
                category = st.selectbox("Category", CATEGORIES, index=CATEGORIES.index(current))
                summary = st.text_area("Summary", value=meta.get("summary") or "")
                event_date = st.text_input("Event date (YYYY-MM-DD)", value=meta.get("event_date") or "")
                expiry_date = st.text_input("Expiry date (YYYY-MM-DD)", value=meta.get("expiry_date") or "")
                if st.form_submit_button("Save"):
                    try:
                        app.replace_document(
                            update_document(
                                BACKEND_URL,
                                doc["document_id"],
                                build_document_patch(title, category, summary, event_date, expiry_date),
                            )
                        )
                    except REQUEST_ERRORS as e:
                        app.set_error(str(e))
                    st.rerun()

            col_risk, col_delete = st.columns(2)
            if col_risk.button("Risk scan", key=f"risk_{doc['document_id']}"):
                try:
                    app.replace_document(analyze_risk(BACKEND_URL, doc["document_id"]))
                except REQUEST_ERRORS as e:
                    app.set_error(str(e))
                st.rerun()
            if col_delete.button("Delete", key=f"del_{doc['document_id']}"):
                try:
                    delete_document(BACKEND_URL, doc["document_id"])
                    app.remove_document(doc["document_id"])
                except REQUEST_ERRORS as e:
                    app.set_error(str(e))
                st.rerun()

    st.divider()
    st.subheader("🧭 Timeline")
    timeline = build_timeline(app.documents)
    if timeline:
        for entry in timeline:
            icon = CATEGORY_ICONS.get(entry["category"], "📄")
            st.markdown(f"**{entry['date']}** · {icon} {entry['title']}")
            st.caption(relative_day(entry["date"]))
    else:
        st.caption("_Dated documents will appear here._")

# =============================================================================
# RIGHT COLUMN - REMINDERS + CHAT
# =============================================================================
with col_right:
    st.subheader("⏰ Reminders")

    with st.form("reminder_form", clear_on_submit=True):
        r_title = st.text_input("Title")
        r_date = st.date_input("Date", value=date.today())
        r_time = st.text_input("Time (HH:MM, optional)")
        r_priority = st.selectbox("Priority", ["High", "Medium", "Low"], index=1)
        if st.form_submit_button("Add reminder") and r_title.strip():
            try:
                create_reminder(
                    BACKEND_URL,
                    {
                        "title": r_title.strip(),
                        "date": r_date.isoformat(),
                        "time": r_time.strip() or None,
                        "priority": r_priority,
                    },
                )
                app.replace_reminders(fetch_reminders(BACKEND_URL))
            except REQUEST_ERRORS as e:
                app.set_error(str(e))
            st.rerun()

    for reminder in merge_reminders(app.documents, app.manual_reminders()):
        badge = PRIORITY_BADGES.get(reminder["priority"], "⚪")
        when = reminder["date"] + (f" {reminder['time']}" if reminder.get("time") else "")
        col_text, col_x = st.columns([5, 1])
        col_text.markdown(f"{badge} **{reminder['title']}**  \n{when} · {relative_day(reminder['date'])}")
        if col_x.button("✕", key=f"rm_{reminder['reminder_id']}"):
            try:
                delete_reminder(BACKEND_URL, reminder["reminder_id"])
            except REQUEST_ERRORS as e:
                app.set_error(str(e))
            refresh()
            st.rerun()

    st.divider()
    st.subheader("💬 Assistant")

    history = chat_store.load()
    for message in history:
        with st.chat_message("assistant" if message["role"] == "model" else "user"):
            st.markdown(message["text"])

    question = st.chat_input("Ask about your documents")
    if question:
        chat_store.append("user", question)
        try:
            reply = send_chat(BACKEND_URL, question, history)
        except REQUEST_ERRORS:
            reply = "Sorry, I'm having trouble connecting to the AI right now."
        chat_store.append("model", reply)
        st.rerun()

    if history and st.button("Clear chat"):
        chat_store.clear()
        st.rerun()
