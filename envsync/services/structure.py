"""Derived JSON views of the store and the inverse template mapping.

``build_template`` and ``build_current_structure`` walk the same
environments/keys, so at any instant both carry identical key sets; the
template erases every value, the current structure keeps every value
(it is what gets dispatched to GitHub). Duplicate keys collapse the way a
JSON object does: the last pair wins.
"""
from __future__ import annotations

from typing import Dict, List, Sequence

from envsync.schemas import (
    Environment,
    EnvironmentInfo,
    EnvironmentShape,
    KeyValue,
    Structure,
    TemplateDocument,
)


def build_template(environments: Sequence[Environment]) -> Structure:
    return {
        env.name: EnvironmentShape(
            vars={kv.key: "" for kv in env.vars},
            secrets={kv.key: "" for kv in env.secrets},
        )
        for env in environments
    }


def build_current_structure(environments: Sequence[Environment]) -> Structure:
    return {
        env.name: EnvironmentShape(
            vars={kv.key: kv.value for kv in env.vars},
            secrets={kv.key: kv.value for kv in env.secrets},
        )
        for env in environments
    }


def build_info_summary(environments: Sequence[Environment]) -> Dict[str, EnvironmentInfo]:
    """Var values plus secret *names* only; safe to log."""
    return {
        env.name: EnvironmentInfo(
            vars={kv.key: kv.value for kv in env.vars},
            secretKeys=[kv.key for kv in env.secrets],
        )
        for env in environments
    }


def structure_to_json(structure: Structure) -> Dict[str, Dict[str, Dict[str, str]]]:
    return {name: shape.model_dump() for name, shape in structure.items()}


def apply_template(doc: TemplateDocument) -> List[Environment]:
    """Turn a template back into environments, in the document's own order.

    Var values are carried over (templates may hold defaults); secrets always
    come back empty and have to be re-entered.
    """
    environments: List[Environment] = []
    for name, shape in doc.structure.items():
        environments.append(
            Environment(
                name=name,
                vars=[KeyValue(key=k, value=v or "") for k, v in shape.vars.items()],
                secrets=[KeyValue(key=k, value="") for k in shape.secrets],
            )
        )
    return environments
