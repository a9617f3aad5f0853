import streamlit as st

from taskboard.markdown_editor import DEFAULT_MARKDOWN, document_stats
from taskboard.runtime import enter_view, sidebar_account
from taskboard.session import MARKDOWN_EDITOR
from taskboard.theme import set_theme

set_theme(page_title="Markdown Editor", page_icon="✍️")

ctx = enter_view(MARKDOWN_EDITOR)
sidebar_account(ctx)

if "markdown_source" not in st.session_state:
    st.session_state.markdown_source = DEFAULT_MARKDOWN

head_l, head_r = st.columns([3, 1])
with head_l:
    st.title("Markdown Editor")
with head_r:
    st.download_button(
        "Download .md",
        data=st.session_state.markdown_source.encode("utf-8"),
        file_name="document.md",
        mime="text/markdown",
        use_container_width=True,
    )
    if st.button("Reset", use_container_width=True):
        st.session_state.markdown_source = DEFAULT_MARKDOWN
        st.rerun()

stats = document_stats(st.session_state.markdown_source)
st.caption(
    f"{stats['words']} words • {stats['lines']} lines • {stats['headings']} headings • {stats['code_blocks']} code blocks"
)

left, right = st.columns(2)
with left:
    st.text_area(
        "Source",
        key="markdown_source",
        height=560,
        placeholder="Enter markdown here...",
        label_visibility="collapsed",
    )
with right:
    with st.container(height=560, border=True):
        st.markdown(st.session_state.markdown_source)

with st.expander("Copy content"):
    # st.code renders a copy-to-clipboard button.
    st.code(st.session_state.markdown_source, language="markdown")
