"""Carry values from one step's submission into the next."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping

from .contracts import FieldMapping, FormDefinition, is_present
from .persistence.models import Submission

logger = logging.getLogger(__name__)


class DataMapper:
    """Fill blank target fields from source values.

    A value the user already entered in the target is never overwritten, no
    matter what the source holds. The source submission is never modified.
    """

    @staticmethod
    def plan(
        source_values: Mapping[str, Any],
        target_values: Mapping[str, Any],
        rules: Iterable[FieldMapping],
    ) -> Dict[str, Any]:
        """Return the target updates ``rules`` would make."""
        updates: Dict[str, Any] = {}
        for rule in rules:
            value = source_values.get(rule.from_key)
            if not is_present(value):
                continue
            if is_present(target_values.get(rule.to_key)) or rule.to_key in updates:
                continue
            updates[rule.to_key] = value
        return updates

    @classmethod
    def apply(
        cls,
        source: Submission,
        target: Submission,
        rules: Iterable[FieldMapping],
    ) -> Dict[str, Any]:
        """Write mapped values into ``target`` and return what was written."""
        updates = cls.plan(source.field_values, target.field_values, rules)
        if updates:
            target.field_values.update(updates)
            logger.debug(
                f"Mapped {sorted(updates)} from submission {source.id} into {target.id}"
            )
        return updates

    @classmethod
    def prefill_shared(
        cls,
        shared_data: Mapping[str, Any],
        target: Submission,
        form: FormDefinition | None,
    ) -> Dict[str, Any]:
        """Fill ``target`` fields that declare a shared key present in ``shared_data``."""
        if form is None or not form.shared_fields:
            return {}
        rules = [
            FieldMapping(from_key=shared_key, to_key=field_name)
            for field_name, shared_key in form.shared_fields.items()
        ]
        updates = cls.plan(shared_data, target.field_values, rules)
        if updates:
            target.field_values.update(updates)
        return updates
