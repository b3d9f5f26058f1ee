"""
Pytest configuration for DOCX Templater
"""

import pytest
import logging
import sys
from pathlib import Path

from PIL import Image

from docx_templater import TemplateSettings
from tests.docx_builders import build_docx


@pytest.fixture(autouse=True)
def configure_logging():
    """Configure logging for tests to avoid file handler issues."""
    # Clear all existing handlers
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    # Set up console-only logging for tests
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.WARNING)  # Only show warnings and errors during tests

    formatter = logging.Formatter(
        '%(name)s - %(levelname)s - %(message)s'
    )
    console_handler.setFormatter(formatter)

    root_logger.addHandler(console_handler)
    root_logger.setLevel(logging.WARNING)

    yield

    # Cleanup after test
    root_logger.handlers.clear()
    logging.getLogger('docx_templater').handlers.clear()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    import tempfile
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def work_dir(temp_dir):
    """Directory receiving the working copies of templates."""
    path = temp_dir / "work"
    path.mkdir()
    return path


@pytest.fixture
def settings(work_dir):
    """Settings writing temporary documents to ``work_dir``."""
    return TemplateSettings(temp_dir=work_dir)


@pytest.fixture
def make_docx(temp_dir):
    """Factory writing a DOCX package into the temporary directory."""
    def _make(name="template.docx", **parts):
        return build_docx(temp_dir / name, **parts)
    return _make


@pytest.fixture
def png_image(temp_dir):
    """A 30x15 PNG image."""
    path = temp_dir / "picture.png"
    Image.new("RGB", (30, 15), color=(200, 30, 30)).save(path)
    return path


@pytest.fixture
def jpeg_image(temp_dir):
    """A 60x90 JPEG image with a ``.jpg`` extension."""
    path = temp_dir / "photo.jpg"
    Image.new("RGB", (60, 90), color=(30, 30, 200)).save(path, format="JPEG")
    return path
