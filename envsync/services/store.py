from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from envsync.core.errors import (
    BlankFieldError,
    DuplicateNameError,
    EmptyNameError,
    IndexOutOfRangeError,
    MinimumEntriesError,
    ValidationError,
)
from envsync.schemas import Environment, KeyValue

logger = logging.getLogger(__name__)

KINDS = ("vars", "secrets")
FIELDS = ("key", "value")


class EnvironmentStore:
    """In-memory list of environments and their vars/secrets.

    Pure data + mutation, no I/O. Two policy flags cover the behaviours the
    UI variants disagree on:

    - ``allow_blank_fields``: when False, ``update_entry`` trims the new value
      and rejects an empty result.
    - ``min_entries_per_collection``: 0 lets a collection shrink to nothing,
      1 refuses to remove the last pair.
    """

    def __init__(self, *, allow_blank_fields: bool = True, min_entries_per_collection: int = 0):
        if min_entries_per_collection not in (0, 1):
            raise ValueError("min_entries_per_collection must be 0 or 1")
        self.allow_blank_fields = allow_blank_fields
        self.min_entries_per_collection = min_entries_per_collection
        self._environments: List[Environment] = []
        self._show_secrets: Dict[str, bool] = {}
        # буфер поля «новое окружение», очищается после успешного добавления
        self.pending_name: str = ""

    # ---------- read ----------
    @property
    def environments(self) -> List[Environment]:
        return list(self._environments)

    def __len__(self) -> int:
        return len(self._environments)

    def names(self) -> List[str]:
        return [env.name for env in self._environments]

    def get(self, name: str) -> Optional[Environment]:
        for env in self._environments:
            if env.name == name:
                return env
        return None

    def secrets_visible(self, env_name: str) -> bool:
        return self._show_secrets.get(env_name, False)

    # ---------- environments ----------
    def add_environment(self, name: Optional[str] = None) -> Environment:
        """Append a new empty environment. ``name`` defaults to ``pending_name``."""
        if name is None:
            name = self.pending_name
        if not name or not name.strip():
            raise EmptyNameError()
        # exact, case-sensitive match
        if any(env.name == name for env in self._environments):
            raise DuplicateNameError(f"Environment '{name}' already exists")
        env = Environment(name=name)
        self._environments.append(env)
        self.pending_name = ""
        logger.info("environment added: name=%s total=%s", name, len(self._environments))
        return env

    def remove_environment(self, name: str) -> bool:
        before = len(self._environments)
        self._environments = [env for env in self._environments if env.name != name]
        self._show_secrets.pop(name, None)
        removed = len(self._environments) != before
        if removed:
            logger.info("environment removed: name=%s", name)
        else:
            logger.debug("environment remove: name=%s not found", name)
        return removed

    def replace(self, environments: Sequence[Environment]) -> None:
        """Swap the whole contents (used when a template is applied)."""
        names = [env.name for env in environments]
        if len(set(names)) != len(names):
            raise DuplicateNameError("Environment names must be unique")
        self._environments = list(environments)
        self._show_secrets = {}
        logger.info("store replaced: environments=%s", names)

    # ---------- entries ----------
    def _env_at(self, env_index: int) -> Environment:
        if not 0 <= env_index < len(self._environments):
            raise IndexOutOfRangeError(f"No environment at index {env_index}")
        return self._environments[env_index]

    @staticmethod
    def _collection(env: Environment, kind: str) -> List[KeyValue]:
        if kind not in KINDS:
            raise ValidationError(f"Unknown collection '{kind}', expected one of {KINDS}")
        return env.vars if kind == "vars" else env.secrets

    @staticmethod
    def _check_entry_index(items: List[KeyValue], entry_index: int) -> None:
        if not 0 <= entry_index < len(items):
            raise IndexOutOfRangeError(f"No entry at index {entry_index}")

    def add_entry(self, env_index: int, kind: str) -> int:
        """Append an empty pair; returns its index."""
        env = self._env_at(env_index)
        items = self._collection(env, kind)
        items.append(KeyValue(key="", value=""))
        return len(items) - 1

    def update_entry(self, env_index: int, kind: str, entry_index: int, field: str, new_value: str) -> KeyValue:
        env = self._env_at(env_index)
        items = self._collection(env, kind)
        self._check_entry_index(items, entry_index)
        if field not in FIELDS:
            raise ValidationError(f"Unknown field '{field}', expected one of {FIELDS}")
        if not self.allow_blank_fields:
            new_value = (new_value or "").strip()
            if not new_value:
                raise BlankFieldError(f"{kind}[{entry_index}].{field} must not be blank")
        setattr(items[entry_index], field, new_value)
        # значение секрета в лог не пишем
        logger.debug(
            "entry updated: env=%s kind=%s index=%s field=%s value_len=%s",
            env.name, kind, entry_index, field, len(new_value),
        )
        return items[entry_index]

    def remove_entry(self, env_index: int, kind: str, entry_index: int) -> None:
        env = self._env_at(env_index)
        items = self._collection(env, kind)
        self._check_entry_index(items, entry_index)
        if len(items) <= self.min_entries_per_collection:
            raise MinimumEntriesError(
                f"{env.name}.{kind} must keep at least {self.min_entries_per_collection} entry"
            )
        del items[entry_index]

    # ---------- presentation ----------
    def toggle_secret_visibility(self, env_name: str) -> bool:
        shown = not self._show_secrets.get(env_name, False)
        self._show_secrets[env_name] = shown
        return shown
