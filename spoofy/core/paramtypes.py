"""Custom Click paramtypes with shell completion support."""

from pathlib import Path
from typing import TYPE_CHECKING

import click

from .duid import Duid, DuidType, hex_to_duid
from .errors import SpoofyError
from .mac import normalize_mac


if TYPE_CHECKING:
    from click.shell_completion import CompletionItem


class MacAddressType(click.ParamType):
    name = "mac"

    def convert(self, value: str, param: click.Parameter | None, ctx: click.Context | None) -> str:
        """Normalize a MAC address to ``AA:BB:CC:DD:EE:FF``."""

        try:
            return normalize_mac(value)
        except SpoofyError as e:
            self.fail(e.message, param, ctx)


class DuidHexType(click.ParamType):
    name = "duid"

    def convert(self, value: "str | Duid", param: click.Parameter | None, ctx: click.Context | None) -> Duid:
        """Parse colon separated DUID hex."""

        if isinstance(value, Duid):
            return value
        try:
            return hex_to_duid(value)
        except SpoofyError as e:
            self.fail(f"{e.message}. {' '.join(e.suggestions)}".strip(), param, ctx)


class DuidTypeType(click.ParamType):
    name = "duid_type"

    def shell_complete(self, ctx: click.Context, param: click.Parameter, incomplete: str) -> list["CompletionItem"]:
        """Provide shell completion for DUID type names."""

        return [
            click.shell_completion.CompletionItem(t.name, help=t.label)
            for t in DuidType
            if t.name.startswith(incomplete.upper())
        ]

    def convert(
        self,
        value: "str | DuidType",
        param: click.Parameter | None,
        ctx: click.Context | None,
    ) -> DuidType:
        """Accept LLT, EN, LL, UUID, their numeric codes or ``duid-`` prefixed names."""

        try:
            return DuidType.from_name(value)
        except SpoofyError as e:
            self.fail(e.message, param, ctx)


class InterfaceType(click.ParamType):
    name = "interface"

    def shell_complete(self, ctx: click.Context, param: click.Parameter, incomplete: str) -> list["CompletionItem"]:
        """Provide shell completion for interface names."""

        from .application import Application

        app = ctx.obj["app"] if ctx and isinstance(ctx.obj, dict) and "app" in ctx.obj else Application.current()
        try:
            interfaces = app.mac.interfaces()
        except SpoofyError:
            return []
        return [
            click.shell_completion.CompletionItem(info.device, help=info.port)
            for info in interfaces
            if info.device.startswith(incomplete)
        ]

    def convert(self, value: str, param: click.Parameter | None, ctx: click.Context | None) -> str:
        value = value.strip()
        if not value:
            self.fail("Interface name cannot be empty", param, ctx)
        return value


class ConfigFileType(click.ParamType):
    name = "config_file"

    def convert(self, value: str, param: click.Parameter | None, ctx: click.Context | None) -> str:
        """Validate that the config file exists."""

        path = Path(value).expanduser()
        if not path.exists():
            self.fail(f"Config file does not exist: {value}", param, ctx)
        if not path.is_file():
            self.fail(f"Path is not a file: {value}", param, ctx)
        return str(path)
