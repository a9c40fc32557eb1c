"""Custom click parameter types for domain values."""

from __future__ import annotations

from datetime import timezone
from enum import Enum

import click

from rms.domain.exceptions import ValidationError
from rms.domain.model.value_objects import Money


class MoneyType(click.ParamType):
    name = "amount"

    def convert(self, value, param, ctx):
        if isinstance(value, Money):
            return value
        try:
            return Money.of(value)
        except ValidationError as exc:
            self.fail(str(exc), param, ctx)


class UtcDateTime(click.DateTime):
    """click.DateTime that reads naive input as UTC."""

    def convert(self, value, param, ctx):
        parsed = super().convert(value, param, ctx)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed


class IdList(click.ParamType):
    """Comma-separated ids, e.g. '3,7,12'."""

    name = "ids"

    def convert(self, value, param, ctx):
        if isinstance(value, list):
            return value
        ids = []
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            try:
                ids.append(int(part))
            except ValueError:
                self.fail(f"Invalid id '{part}'", param, ctx)
        return ids


def enum_choice(enum_cls: type[Enum]) -> click.Choice:
    return click.Choice([member.value for member in enum_cls], case_sensitive=False)


MONEY = MoneyType()
UTC_DATETIME = UtcDateTime(formats=["%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S"])
ID_LIST = IdList()
