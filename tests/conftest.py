import pytest
import sys
from io import BytesIO
from pathlib import Path
from PIL import Image

# Add src to sys.path so we can import quiz_builder
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from quiz_builder.config import StoreConfig
from quiz_builder.editor.session import QuizSession


def _image_bytes(fmt: str, color: str) -> bytes:
    img = Image.new("RGB", (40, 20), color=color)
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


# Common test fixtures
@pytest.fixture
def png_bytes() -> bytes:
    """A small PNG image."""
    return _image_bytes("PNG", "white")


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A small JPEG image."""
    return _image_bytes("JPEG", "red")


@pytest.fixture
def sample_image(tmp_path: Path, png_bytes: bytes) -> Path:
    """A PNG image on disk."""
    img_path = tmp_path / "sample.png"
    img_path.write_bytes(png_bytes)
    return img_path


@pytest.fixture
def store_config(tmp_path: Path) -> StoreConfig:
    """Store configuration rooted in the test's temp directory."""
    return StoreConfig(data_dir=tmp_path / "data")


@pytest.fixture
def session(store_config: StoreConfig):
    """A fresh editing session, closed after the test."""
    s = QuizSession(store_config)
    yield s
    s.close()
