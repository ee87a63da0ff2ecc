"""Streamlit web application for OranjeStudie."""

import streamlit as st

from src.chains.study_guide import AnalysisRequest, ImageBlob
from src.ui.api_client import APIClient
from src.ui.presenter import source_links
from src.ui.state import InputCollector, InputKind, StudySession, UIStatus

IMAGE_TYPES = ["png", "jpg", "jpeg", "webp", "gif"]

# Page configuration
st.set_page_config(
    page_title="OranjeStudie - 荷兰语 A2-B1 备考助手",
    page_icon="🇳🇱",
    layout="wide",
)

# Initialize API client
api_client = APIClient()


def run_analysis(text: str, image: ImageBlob | None):
    """Send the collected input to the API and record the outcome."""
    session: StudySession = st.session_state.session
    collector: InputCollector = st.session_state.collector

    collector.is_loading = True
    try:
        with st.spinner("分析中..."):
            session.run(AnalysisRequest(text=text, image=image), api_client.analyze)
    finally:
        collector.is_loading = False
    st.rerun()


def reset():
    """Back to the input form with text and image discarded."""
    st.session_state.session.reset()
    st.session_state.collector = InputCollector(on_send=run_analysis)
    # New widget keys clear the text area and file uploader
    st.session_state.form_key += 1


def init_session_state():
    """Initialize session state variables."""
    if "session" not in st.session_state:
        st.session_state.session = StudySession()
    if "collector" not in st.session_state:
        st.session_state.collector = InputCollector(on_send=run_analysis)
    if "form_key" not in st.session_state:
        st.session_state.form_key = 0

    # Rebind to this run's callback
    st.session_state.collector.on_send = run_analysis


def render_sidebar():
    """Render sidebar with API status."""
    with st.sidebar:
        st.subheader("API 状态")
        if api_client.health_check():
            st.success("✅ API 连接正常")
        else:
            st.error("❌ API 连接失败")
            st.caption("请先启动 API 服务器")

        st.divider()
        st.caption("OranjeStudie v0.1.0")


def render_input_section():
    """Render the input form."""
    collector: InputCollector = st.session_state.collector
    form_key = st.session_state.form_key

    text = st.text_area(
        "学习内容",
        value=collector.text,
        height=160,
        placeholder="输入荷兰语单词、句子、文章，粘贴网址，或者上传图片...",
        disabled=collector.is_loading,
        key=f"text_{form_key}",
        label_visibility="collapsed",
    )
    collector.set_text(text)

    if collector.input_kind == InputKind.URL:
        st.caption("🔗 检测到网址，将读取网页内容进行分析")

    uploaded = st.file_uploader(
        "上传图片",
        type=IMAGE_TYPES,
        disabled=collector.is_loading,
        key=f"image_{form_key}",
        help="支持 JPG, PNG. 自动识别内容。",
    )
    if uploaded is None:
        collector.clear_image()
    elif (
        collector.image is None
        or collector.image.filename != uploaded.name
        or len(collector.image.data) != uploaded.size
    ):
        collector.set_image(uploaded.getvalue(), uploaded.type, uploaded.name)

    if collector.preview_url:
        st.image(collector.preview_url, width=240)

    if st.button("生成学习资料", type="primary", disabled=not collector.can_submit):
        collector.submit()


def render_error_banner(message: str):
    """Render the error banner with a retry action."""
    col1, col2 = st.columns([6, 1])
    with col1:
        st.error(f"**出错啦**\n\n{message}")
    with col2:
        st.button("重试", on_click=reset)


def render_result_section():
    """Render the generated study guide."""
    state = st.session_state.session.state

    st.button("重新开始", on_click=reset)
    st.markdown(state.data.markdown)

    links = source_links(state.sources)
    if links:
        st.subheader("参考来源")
        for link in links:
            st.markdown(f"- [{link['label']}]({link['url']})")


def main():
    """Main application entry point."""
    init_session_state()

    st.title("OranjeStudie")
    st.caption("荷兰语 A2-B1 备考助手")

    render_sidebar()

    state = st.session_state.session.state

    if state.status == UIStatus.IDLE:
        st.header("开启你的荷兰语学习之旅")
        st.markdown("上传图片、输入文本或粘贴网址。AI 助教会为您生成 A2-B1 等级的双语沉浸式学习资料。")

    if state.status == UIStatus.FAILURE:
        render_error_banner(state.error)

    if state.status == UIStatus.SUCCESS:
        render_result_section()
    else:
        render_input_section()

    st.divider()
    st.caption("Powered by Google Gemini.")


if __name__ == "__main__":
    main()
