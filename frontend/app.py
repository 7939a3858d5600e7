"""Vendor Nexus - Streamlit Chat Interface.

Thin client for the conversational sourcing assistant.
All business logic lives in the FastAPI backend. This file handles:
  - The requirement form that opens a sourcing session
  - Chat turns (POST /chat/start, POST /chat) with attachments
  - The accumulated vendor table, CSV export and "load more"
  - The vault sidebar: auto-save, load, delete, new session
"""

import os
from datetime import datetime, timezone
from uuid import uuid4

import pandas as pd
import requests
import streamlit as st

# Config
API_URL = os.environ.get("API_URL", "http://localhost:8000")
CHAT_ENDPOINT = f"{API_URL}/chat"
START_ENDPOINT = f"{API_URL}/chat/start"
VAULT_ENDPOINT = f"{API_URL}/vault"
EXPORT_ENDPOINT = f"{API_URL}/export"
EXTRACT_ENDPOINT = f"{API_URL}/extract"
HEALTH_ENDPOINT = f"{API_URL}/health"

ATTACHMENT_TYPES = [
    "txt", "md", "csv", "json", "pdf", "docx", "xlsx", "xls",
    "png", "jpg", "jpeg", "bmp", "tiff", "webp",
]

LOAD_MORE_PROMPT = "Please find 5 more different suppliers for the same requirement."

LOCATIONS = [
    "All India", "Hyderabad", "Mumbai", "Delhi", "Bangalore", "Chennai",
    "Gujarat", "Pune", "Kolkata", "China", "All Overseas", "Other Countries",
]

# Page setup
st.set_page_config(
    page_title="Vendor Nexus - AI Sourcing",
    layout="wide",
)


def init_session():
    """Initialize session state on first load."""
    defaults = {
        "client_id": str(uuid4()),
        "vault_id": None,
        "step": "initial",
        "requirement": None,
        "messages": [],
        "vendors": [],
        "attachment": "",
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def reset_session():
    """Drop the working copy; the vault keeps whatever was saved."""
    st.session_state.vault_id = None
    st.session_state.step = "initial"
    st.session_state.requirement = None
    st.session_state.messages = []
    st.session_state.vendors = []
    st.session_state.attachment = ""


def new_message(role: str, content: str) -> dict:
    return {"role": role, "content": content, "timestamp": datetime.now(timezone.utc).isoformat()}


def fetch_vault() -> list[dict]:
    try:
        resp = requests.get(VAULT_ENDPOINT, timeout=5)
        if resp.status_code == 200:
            return resp.json()
    except requests.RequestException:
        pass  # Sidebar degrades to an empty list
    return []


def save_to_vault():
    """Upsert the working copy. The vault assigns the id on first save."""
    if not (st.session_state.messages or st.session_state.vendors or st.session_state.requirement):
        return
    payload = {
        "id": st.session_state.vault_id,
        "requirement": st.session_state.requirement,
        "messages": st.session_state.messages,
        "vendors": st.session_state.vendors,
    }
    try:
        resp = requests.post(VAULT_ENDPOINT, json=payload, timeout=5)
        if resp.status_code == 200:
            st.session_state.vault_id = resp.json()["id"]
    except requests.RequestException:
        st.toast("[WARN] Could not save session to the vault.")


def load_from_vault(session: dict):
    st.session_state.vault_id = session["id"]
    st.session_state.requirement = session.get("requirement")
    st.session_state.messages = session.get("messages", [])
    st.session_state.vendors = session.get("vendors", [])
    st.session_state.step = "chat"


def delete_from_vault(session_id: str):
    try:
        requests.delete(f"{VAULT_ENDPOINT}/{session_id}", timeout=5)
    except requests.RequestException:
        st.toast("[WARN] Could not delete session.")
        return
    if st.session_state.vault_id == session_id:
        reset_session()


def extract_attachment(uploaded) -> str:
    """Send a file to the backend and return the labelled text block."""
    try:
        resp = requests.post(
            EXTRACT_ENDPOINT,
            files={"file": (uploaded.name, uploaded.getvalue(), uploaded.type or "application/octet-stream")},
            timeout=60,
        )
        if resp.status_code == 200:
            return resp.json()["label"]
    except requests.RequestException:
        pass
    return f"\n\n[Attached File: {uploaded.name}]\nContent:\n[Error extracting text from {uploaded.name}]\n\n"


def post_turn(endpoint: str, payload: dict) -> dict | None:
    """POST a turn to the backend and surface transport errors inline."""
    try:
        resp = requests.post(endpoint, json=payload, timeout=120)
    except requests.Timeout:
        st.error("[TIMEOUT] Request timed out. The server may be overloaded.")
        return None
    except requests.ConnectionError:
        st.error("[DISCONNECT] Cannot connect to the backend. Is the API server running?")
        return None

    if resp.status_code == 200:
        return resp.json()
    if resp.status_code == 429:
        st.error("[SLOW DOWN] Too many requests. Please wait a moment.")
    elif resp.status_code == 422:
        st.error("[ERROR] Invalid request. Please check your input.")
    else:
        st.error(f"[ERROR] Server error ({resp.status_code}). Please try again.")
    return None


def apply_reply(data: dict):
    st.session_state.messages.append(new_message("assistant", data["text"]))
    st.session_state.vendors = data["merged_vendors"]
    save_to_vault()


def start_sourcing(requirement: dict) -> bool:
    """First turn: the backend builds the composite prompt and the chat echo.

    The form stays up until the backend answers, so a failed request can be
    resubmitted as a first turn.
    """
    with st.spinner("Analyzing your requirement..."):
        data = post_turn(START_ENDPOINT, {
            "session_id": st.session_state.client_id,
            "requirement": requirement,
            "vendors": st.session_state.vendors,
        })
    if data is None:
        return False
    st.session_state.requirement = requirement
    st.session_state.step = "chat"
    st.session_state.messages = [new_message("user", data["echo"])]
    apply_reply(data)
    return True


def send_message(content: str):
    st.session_state.messages.append(new_message("user", content))
    with st.spinner("Consulting the sourcing network..."):
        data = post_turn(CHAT_ENDPOINT, {
            "session_id": st.session_state.client_id,
            "messages": [{"role": m["role"], "content": m["content"]} for m in st.session_state.messages],
            "vendors": st.session_state.vendors,
        })
    if data is None:
        save_to_vault()
        return
    apply_reply(data)


def render_sidebar():
    with st.sidebar:
        st.markdown("### Sourcing Vault")
        if st.button("New Session", use_container_width=True):
            save_to_vault()
            reset_session()
            st.rerun()

        st.divider()
        sessions = fetch_vault()
        if not sessions:
            st.caption("No saved sessions yet.")
        for session in sessions:
            cols = st.columns([5, 1])
            label = session["title"]
            if session["id"] == st.session_state.vault_id:
                label = f"**{label}**"
            if cols[0].button(label, key=f"load-{session['id']}", use_container_width=True):
                load_from_vault(session)
                st.rerun()
            if cols[1].button("✕", key=f"del-{session['id']}"):
                delete_from_vault(session["id"])
                st.rerun()

        st.divider()
        try:
            health = requests.get(HEALTH_ENDPOINT, timeout=3).json()
            api_status = health.get("status", "unknown")
        except requests.RequestException:
            api_status = "offline"
        st.caption(f"API status: {api_status}")


def render_requirement_form():
    st.subheader("New Sourcing Request")
    with st.form("requirement"):
        item_name = st.text_input("Item Name", placeholder="e.g. Industrial Valves")
        col1, col2 = st.columns(2)
        location = col1.selectbox("Preferred Location", LOCATIONS, index=LOCATIONS.index("Hyderabad"))
        quantity = col2.text_input("Quantity", placeholder="e.g. 5000 units")
        description = st.text_area(
            "Description",
            placeholder="Describe technical specifications, material requirements, dimensions, etc...",
        )
        specs = st.text_input("Additional Specs")
        uploaded = st.file_uploader("Attach Spec Sheet", type=ATTACHMENT_TYPES)
        submitted = st.form_submit_button("Start AI Sourcing", use_container_width=True)

    if submitted:
        if not item_name.strip() or not description.strip():
            st.error("Item name and description are required.")
            return
        if uploaded is not None:
            with st.spinner("Processing attachment..."):
                description += extract_attachment(uploaded)
        if start_sourcing({
            "item_name": item_name.strip(),
            "description": description,
            "quantity": quantity or None,
            "preferred_location": location,
            "additional_specs": specs or None,
        }):
            st.rerun()


def render_vendor_table():
    vendors = st.session_state.vendors
    if not vendors:
        st.info("No suppliers found yet. The AI analyst will interview you if details are missing.")
        return

    st.subheader(f"Identified Suppliers ({len(vendors)})")
    frame = pd.DataFrame(vendors)
    columns = [c for c in ["name", "category", "city", "contact", "website", "rating"] if c in frame.columns]
    st.dataframe(frame[columns], use_container_width=True, hide_index=True)

    col1, col2 = st.columns(2)
    if col1.button("Load More Suppliers", use_container_width=True):
        send_message(LOAD_MORE_PROMPT)
        st.rerun()
    try:
        report = requests.post(EXPORT_ENDPOINT, json={"vendors": vendors}, timeout=10)
        if report.status_code == 200:
            col2.download_button("Export CSV", report.content, file_name="vendor_sourcing_report.csv",
                                 mime="text/csv", use_container_width=True)
    except requests.RequestException:
        col2.caption("Export unavailable.")


def render_chat():
    for msg in st.session_state.messages:
        with st.chat_message(msg["role"]):
            st.markdown(msg["content"])

    uploaded = st.file_uploader("Attach a file to your next message",
                                type=ATTACHMENT_TYPES, key="chat-attachment")
    if uploaded is not None and st.button("Add attachment"):
        with st.spinner("Processing attachment..."):
            st.session_state.attachment += extract_attachment(uploaded)
        st.toast(f"Attached {uploaded.name}")

    if user_input := st.chat_input("Type your reply..."):
        content = user_input + st.session_state.attachment
        st.session_state.attachment = ""
        send_message(content)
        st.rerun()


def main():
    """Run the Streamlit sourcing application."""
    init_session()
    render_sidebar()

    st.title("Vendor Nexus")
    st.caption("AI sourcing analyst for Indian and Chinese manufacturers")

    left, right = st.columns([5, 7])
    with left:
        if st.session_state.step == "initial":
            render_requirement_form()
        else:
            render_chat()
    with right:
        render_vendor_table()


if __name__ == "__main__":
    main()
