import pathlib

import pytest

RESX_HEADER = """<?xml version="1.0" encoding="utf-8"?>
<root>
  <resheader name="resmimetype">
    <value>text/microsoft-resx</value>
  </resheader>
"""


@pytest.fixture
def write_file():
    def write(path: pathlib.Path, content: str | bytes) -> pathlib.Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    return write


@pytest.fixture
def resx_file(write_file):
    """Write a .resx file holding ``(key, value, comment)`` data nodes."""

    def write(path: pathlib.Path, entries: list[tuple[str, str, str | None]]) -> pathlib.Path:
        nodes = []
        for key, value, comment in entries:
            node = f'  <data name="{key}" xml:space="preserve">\n    <value>{value}</value>\n'
            if comment:
                node += f"    <comment>{comment}</comment>\n"
            node += "  </data>\n"
            nodes.append(node)
        return write_file(path, RESX_HEADER + "".join(nodes) + "</root>\n")

    return write
