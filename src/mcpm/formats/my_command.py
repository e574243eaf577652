from __future__ import annotations

from mcpm.content.documents import replace_tokens
from mcpm.content.io import dump_document, load_document

FORMAT_NAME = "mc"
FORMAT_LABEL = "MyCommand"
TEMPLATE_FILENAME = "mycommand-commands.yml"
SERVER_NAME_TOKEN = "{SERVER_NAME}"


def render_commands(template_text: str, server_name: str, *, source: str | None = None) -> str:
    """Fill the server name into every string of the commands template."""
    document = load_document(template_text, source=source)
    return dump_document(replace_tokens(document, {SERVER_NAME_TOKEN: server_name}))
