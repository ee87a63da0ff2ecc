"""Tests for HTMX input form components."""

import re

from fastapi.testclient import TestClient


class TestIndexPage:
    """Test index page content and structure."""

    def test_page_title(self):
        """GET / returns page with the OranjeStudie title."""
        from src.api.main import app

        client = TestClient(app)
        response = client.get("/")

        assert response.status_code == 200
        html = response.text

        assert "<title>OranjeStudie" in html
        assert "荷兰语 A2-B1 备考助手" in html

    def test_intro_and_footer(self):
        """Idle page shows the intro and the footer."""
        from src.api.main import app

        client = TestClient(app)
        html = client.get("/").text

        assert "<main" in html
        assert "开启你的" in html
        assert "Powered by Google Gemini." in html

    def test_no_result_or_error_when_idle(self):
        """Idle page has neither a result view nor an error banner."""
        from src.api.main import app

        client = TestClient(app)
        html = client.get("/").text

        assert 'id="result"' not in html
        assert "出错啦" not in html


class TestInputTextarea:
    """Test the text input."""

    def test_input_textarea(self):
        """Index page contains textarea with name='text' and placeholder."""
        from src.api.main import app

        client = TestClient(app)
        html = client.get("/").text

        assert "<textarea" in html
        assert 'name="text"' in html
        assert "placeholder=" in html


class TestImagePicker:
    """Test the image picker."""

    def test_image_input_accepts_images_only(self):
        from src.api.main import app

        client = TestClient(app)
        html = client.get("/").text

        assert 'type="file"' in html
        assert 'name="image"' in html
        assert 'accept="image/*"' in html
        assert "上传图片" in html


class TestSubmitButton:
    """Test submit button with HTMX attributes."""

    def test_form_htmx_attrs(self):
        """Form posts multipart data to /ui/analyze and swaps the workspace."""
        from src.api.main import app

        client = TestClient(app)
        html = client.get("/").text

        assert 'hx-post="/ui/analyze"' in html
        assert 'hx-target="#workspace"' in html
        assert "hx-swap=" in html
        assert 'hx-encoding="multipart/form-data"' in html
        assert 'id="workspace"' in html

    def test_submit_disabled_when_empty(self):
        """Submit starts disabled and has a loading indicator."""
        from src.api.main import app

        client = TestClient(app)
        html = client.get("/").text

        assert "生成学习资料" in html
        assert re.search(r'<button[^>]*id="submit-button"[^>]*disabled', html)
        assert "分析中..." in html
        assert 'hx-indicator="#loading"' in html
