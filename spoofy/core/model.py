"""Pydantic models that render themselves as rich tables."""

from collections.abc import Iterator
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel
from rich.console import Console
from rich.table import Table


class DisplayModel(BaseModel):
    """Model shown to the user as a two column field/value table."""

    def rows(self) -> Iterator[tuple[str, str]]:
        """(label, text) pairs for every field that has a value."""

        for name, field in type(self).model_fields.items():
            value = getattr(self, name)
            if value is None:
                continue
            yield field.title or name, self._format_value(value)

    def display(self, console: Console | None = None, title: str | None = None) -> None:
        if console is None:
            console = Console()

        table = Table(title=title or self.__class__.__name__, show_header=True)
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="green")
        for label, text in self.rows():
            table.add_row(label, text)

        console.print(table)

    @staticmethod
    def _format_value(value: Any) -> str:
        match value:
            case bool():
                return "[yellow]yes[/yellow]" if value else "no"
            case Enum():
                return f"{value.value} ({value.name})"
            case datetime():
                return value.isoformat()
            case bytes():
                return value.hex(":")
            case list():
                return ", ".join(str(v) for v in value) or "-"
        return str(value)
