"""
Downloadable document templates.

Templates are looked up by id. A deployed file in TEMPLATES_DIR wins;
otherwise the template is generated once and written there so later
downloads serve identical bytes.
"""
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable
from grant_portal.core.config import settings
from grant_portal.utils.consent_template import build_consent_template, build_land_declaration_template

logger = logging.getLogger(__name__)


class TemplateNotFoundError(Exception):
    """Unknown template id"""
    pass


@dataclass(frozen=True)
class TemplateEntry:
    filename: str
    media_type: str
    builder: Callable[[], bytes]


@dataclass(frozen=True)
class TemplateAsset:
    template_id: str
    filename: str
    media_type: str
    content: bytes


TEMPLATE_REGISTRY: dict[str, TemplateEntry] = {
    settings.CONSENT_TEMPLATE_ID: TemplateEntry(
        filename=settings.CONSENT_TEMPLATE_FILENAME,
        media_type="application/pdf",
        builder=build_consent_template,
    ),
    "land-declaration": TemplateEntry(
        filename="land-declaration-template.csv",
        media_type="text/csv",
        builder=build_land_declaration_template,
    ),
}


class TemplateService:
    def __init__(self, templates_dir: str | Path):
        self.templates_dir = Path(templates_dir)
        self._lock = threading.Lock()

    def get(self, template_id: str) -> TemplateAsset:
        entry = TEMPLATE_REGISTRY.get(template_id)
        if entry is None:
            raise TemplateNotFoundError(f"Template not found: {template_id}")

        path = self.templates_dir / entry.filename
        # Callers run in worker threads; only one of them generates
        with self._lock:
            if path.exists():
                content = path.read_bytes()
            else:
                content = self._generate(template_id, entry, path)

        return TemplateAsset(
            template_id=template_id,
            filename=entry.filename,
            media_type=entry.media_type,
            content=content,
        )

    def _generate(self, template_id: str, entry: TemplateEntry, path: Path) -> bytes:
        logger.info(f"Generating template {template_id} at {path}")
        content = entry.builder()
        self.templates_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=self.templates_dir, suffix=".part", delete=False) as tmp:
            tmp.write(content)
        os.replace(tmp.name, path)
        return content


template_service = TemplateService(settings.TEMPLATES_DIR)
