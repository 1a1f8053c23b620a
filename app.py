import logging

import streamlit as st

from quantum_archives.data_models import PhysicistName
from quantum_archives.runner import BackgroundLoop
from quantum_archives.session import SessionController, create_session_controller

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

st.set_page_config(page_title="Quantum Archives", layout="wide")

TABS = {"discover": "Discover", "collection": "Collection", "chat": "RAG Chat"}


@st.cache_resource
def get_event_loop() -> BackgroundLoop:
    """A single event loop for the whole server, shared by every browser session."""
    return BackgroundLoop()


def get_session() -> SessionController:
    """One controller per browser session."""
    if "controller" not in st.session_state:
        st.session_state.controller = create_session_controller()
    return st.session_state.controller


def run(coro):
    return get_event_loop().run(coro)


def render_discover(controller: SessionController):
    st.header("Explore Quantum Mechanics")
    st.caption(
        "Select a physicist to retrieve their most influential papers using Gemini. "
        "Collect them to build your personal RAG knowledge base."
    )
    state = controller.state
    columns = st.columns(len(PhysicistName))
    for column, physicist in zip(columns, PhysicistName):
        selected = state.selected_physicist == physicist
        if column.button(physicist.value, type="primary" if selected else "secondary", use_container_width=True):
            with st.spinner("Retrieving papers from the archive..."):
                run(controller.select_physicist(physicist))
            st.rerun()

    state = controller.state
    if state.selected_physicist is None:
        st.info("Select a physicist above to begin your research.")
        return
    if not state.discovered_papers:
        st.warning("No papers found.")
        return

    columns = st.columns(3)
    for idx, paper in enumerate(state.discovered_papers):
        with columns[idx % 3].container(border=True):
            st.caption(str(paper.year))
            st.subheader(paper.title)
            st.write(paper.description)
            collected = controller.is_collected(paper)
            label = "Collected" if collected else "Add to Collection"
            if st.button(label, key=f"collect-{paper.id}", disabled=collected, use_container_width=True):
                controller.collect_paper(paper)
                st.rerun()


def render_collection(controller: SessionController):
    st.header("Your Knowledge Base")
    papers = controller.state.collected_papers
    if not papers:
        st.info("Collection is Empty. Go to Discover to find and collect papers.")
        return

    columns = st.columns(3)
    for idx, paper in enumerate(papers):
        with columns[idx % 3].container(border=True):
            st.caption(f"{paper.year} · {paper.physicist.value}")
            st.subheader(paper.title)
            st.write(paper.description)
            if st.button("Remove", key=f"remove-{paper.id}", use_container_width=True):
                controller.remove_paper(paper.id)
                st.rerun()


def render_chat(controller: SessionController):
    st.header("Deep Archive Search")
    state = controller.state
    st.caption(
        "Chat with Gemini using Google Search Grounding. "
        f"{len(state.collected_papers)} papers in context."
    )

    for message in state.messages:
        with st.chat_message("user" if message.role == "user" else "assistant"):
            st.markdown(message.text)
            if message.sources:
                st.caption("GROUNDED SOURCES")
                for source in message.sources:
                    st.markdown(f"- [{source.title}]({source.uri})")

    placeholder = (
        "Collect papers first to enable full context..."
        if not state.collected_papers else "Ask about the collected papers..."
    )
    prompt = st.chat_input(placeholder, disabled=state.is_loading)
    if prompt:
        with st.spinner("Analyzing Quantum Archives..."):
            run(controller.send_message(prompt))
        st.rerun()


def main():
    controller = get_session()
    st.title("Quantum Archives")
    st.caption("Heisenberg • Pauli • Schrödinger • Dirac")

    tab = st.radio(
        "View",
        list(TABS),
        index=list(TABS).index(controller.state.active_tab),
        format_func=lambda key: TABS[key],
        horizontal=True,
        label_visibility="collapsed",
    )
    if tab != controller.state.active_tab:
        controller.switch_tab(tab)

    if tab == "discover":
        render_discover(controller)
    elif tab == "collection":
        render_collection(controller)
    else:
        render_chat(controller)


main()
