"""Plugins registered by every framework before third-party ones."""

from askflow.builtin.cli import CliPlugin
from askflow.builtin.echo import EchoBackendsPlugin
from askflow.builtin.store import ChatStorePlugin

BUILTIN_PLUGINS: dict[str, object] = {
    "echo": EchoBackendsPlugin(),
    "store": ChatStorePlugin(),
    "cli": CliPlugin(),
}
