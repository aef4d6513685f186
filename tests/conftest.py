"""Shared test fixtures for all test modules."""

import sys

import pytest
import structlog

from steamdoc.models.config import Config
from steamdoc.services.document_manager import DocumentManager
from steamdoc.services.editor_tools import EditorTools
from steamdoc.services.session import EditorSession


LESSON_MARKDOWN = """# Plant Growth Lab

Students observe how light affects seedlings.

## Materials

- Bean seeds
- Paper cups
  - Labelled with names

```python
print("measure height")
```
"""


@pytest.fixture
def lesson_markdown() -> str:
    """A small lesson plan exercising every block type."""
    return LESSON_MARKDOWN


@pytest.fixture
def session(lesson_markdown) -> EditorSession:
    """Session with a single active lesson document."""
    documents = DocumentManager()
    documents.add_document(name="Plant Growth", content=lesson_markdown, type="lesson")
    return EditorSession(documents=documents, config=Config())


@pytest.fixture
def tools(session) -> EditorTools:
    return EditorTools(session)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch, tmp_path):
    """Isolate tests from the user's home directory and environment."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("STEAMDOC_LANGUAGE", raising=False)
    monkeypatch.delenv("STEAMDOC_LOG_LEVEL", raising=False)
    # Give each test fresh module-level logger proxies so a proxy cached on
    # first use does not keep writing to a previous test's log file.
    for module_name, module in list(sys.modules.items()):
        if module_name.startswith("steamdoc") and isinstance(
            getattr(module, "logger", None), structlog._config.BoundLoggerLazyProxy
        ):
            monkeypatch.setattr(module, "logger", structlog.get_logger(module_name))
    yield
    structlog.reset_defaults()
