"""Saved templates: a JSON file of template documents plus import/export helpers."""
from __future__ import annotations

import json
import logging
import os
import pathlib
from typing import List, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from envsync.core.errors import TemplateFormatError, TemplateNotFoundError
from envsync.schemas import Environment, TemplateDocument
from envsync.services.structure import build_template

logger = logging.getLogger(__name__)


class TemplateRepository:
    """File-backed list of templates with ``load()``/``save(list)``."""

    def __init__(self, path: Union[str, pathlib.Path]):
        path = pathlib.Path(path).expanduser()
        if not path.is_absolute():
            path = pathlib.Path.cwd() / path
        self.path = path

    def load(self) -> List[TemplateDocument]:
        """All saved templates; a damaged file raises ``TemplateFormatError`` so it is never overwritten."""
        try:
            if not self.path.exists():
                return []
            data = json.loads(self.path.read_text("utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            raise TemplateFormatError(f"Failed to load templates from {self.path}: {e}") from e

        items = data.get("templates") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise TemplateFormatError(f"Unexpected templates file structure in {self.path}")
        try:
            return [TemplateDocument.model_validate(raw) for raw in items]
        except PydanticValidationError as e:
            raise TemplateFormatError(f"Invalid template entry in {self.path}: {e.errors()[0].get('msg')}") from e

    def save(self, templates: Sequence[TemplateDocument]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {"templates": [t.model_dump(exclude_none=True) for t in templates]}
        # пишем во временный файл и подменяем, чтобы не оставить обрезанный JSON
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self.path)
        logger.info("Saved %s template(s) to %s", len(templates), self.path)

    # ---------- helpers on top of load/save ----------
    def search(self, term: Optional[str] = None) -> List[TemplateDocument]:
        try:
            templates = self.load()
        except TemplateFormatError:
            logger.warning("Templates file %s is unreadable, search returns nothing", self.path, exc_info=True)
            return []
        if not term:
            return templates
        needle = term.lower()
        return [t for t in templates if needle in t.name.lower()]

    def get(self, name: str) -> TemplateDocument:
        for t in self.load():
            if t.name == name:
                return t
        raise TemplateNotFoundError(f"Template '{name}' not found")

    def put(self, doc: TemplateDocument) -> bool:
        """Store ``doc``, replacing a template with the same name. True if replaced."""
        doc = without_secret_values(doc)
        templates = self.load()
        for i, t in enumerate(templates):
            if t.name == doc.name:
                templates[i] = doc
                self.save(templates)
                return True
        templates.append(doc)
        self.save(templates)
        return False

    def delete(self, name: str) -> bool:
        templates = self.load()
        kept = [t for t in templates if t.name != name]
        if len(kept) == len(templates):
            return False
        self.save(kept)
        return True


def without_secret_values(doc: TemplateDocument) -> TemplateDocument:
    """Copy of ``doc`` whose secret placeholders are all empty."""
    structure = {
        name: shape.model_copy(update={"secrets": {k: "" for k in shape.secrets}})
        for name, shape in doc.structure.items()
    }
    return doc.model_copy(update={"structure": structure})


def export_template(
    environments: Sequence[Environment],
    name: str,
    description: Optional[str] = None,
    version: Optional[str] = None,
    author: Optional[str] = None,
) -> TemplateDocument:
    if not name or not name.strip():
        raise TemplateFormatError("Template name must not be empty")
    return TemplateDocument(
        name=name,
        description=description,
        version=version,
        author=author,
        structure=build_template(environments),
    )


def parse_template(raw: Union[str, bytes]) -> TemplateDocument:
    """Validate an imported template file."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise TemplateFormatError(f"Template is not valid JSON: {e}") from e
    try:
        doc = TemplateDocument.model_validate(data)
    except PydanticValidationError as e:
        raise TemplateFormatError(f"Invalid template document: {e.errors()[0].get('msg')}") from e
    if not doc.name.strip():
        raise TemplateFormatError("Template name must not be empty")
    return doc


def dump_template(doc: TemplateDocument) -> str:
    doc = without_secret_values(doc)
    return json.dumps(doc.model_dump(exclude_none=True), ensure_ascii=False, indent=2)
