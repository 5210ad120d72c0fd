"""
Renders call records back into the verified text form.

The output of render_text() parses back to the same records with
parse_text(), which is what lets an operator approve a produced sequence
by saving it as the next expected one.
"""

from collections.abc import Iterable, Mapping

from callbook.schema import CallRecord, FormatConfig
from callbook.sequence.parser import PREAMBLE_TITLE, RETURNS_LABEL, THROWS_LABEL


def render_preamble(test_inputs: Mapping[str, str], config: FormatConfig) -> str:
    """Render the ``<Test Inputs>`` block, or an empty string if there are none."""
    if not test_inputs:
        return ""
    lines = [f"{config.preamble_icon} {PREAMBLE_TITLE}"]
    lines.extend(
        f"{config.indent}{config.input_icon} {name}: {value}"
        for name, value in test_inputs.items()
    )
    return "\n".join(lines)


def render_record(record: CallRecord, config: FormatConfig) -> str:
    """Render one call as its header line followed by indented detail lines."""
    indent = config.indent
    lines = [f"{record.icon or config.header_icon} {record.method_name}:"]

    for argument in record.inputs:
        lines.append(f"{indent}{config.input_icon} {argument.name}: {argument.value}")
    for argument in record.outputs:
        lines.append(f"{indent}{config.output_icon} {argument.name}: {argument.value}")
    if record.note is not None:
        for note_line in record.note.split("\n"):
            lines.append(f"{indent}{config.note_icon} {note_line}".rstrip())

    if record.error is not None:
        lines.append(f"{indent}{config.throws_icon} {THROWS_LABEL} {record.error}")
    elif record.result is not None:
        lines.append(f"{indent}{config.returns_icon} {RETURNS_LABEL} {record.result}")

    return "\n".join(lines)


def render_text(
    records: Iterable[CallRecord],
    test_inputs: Mapping[str, str],
    config: FormatConfig,
) -> str:
    """
    Render a preamble and records as verified text.

    Blocks are separated by one blank line and the text ends with exactly
    one newline. Nothing to render yields an empty string.
    """
    blocks = []
    preamble = render_preamble(test_inputs, config)
    if preamble:
        blocks.append(preamble)
    blocks.extend(render_record(record, config) for record in records)
    if not blocks:
        return ""
    return "\n\n".join(blocks) + "\n"
