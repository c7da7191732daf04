"""
edit_planner.py — Turns the pending edits collected on DartClass models (and a
reformatted import block) into line-ranged text edits, and applies them to a
source text.
"""

from dataclasses import dataclass
from typing import Optional

from dartforge.dart_model import DartClass
from dartforge.imports import DartImports
from dartforge.text_utils import is_blank, remove_end


@dataclass
class TextEdit:
    """Replace lines ``start_line..end_line`` (1-based, inclusive) with ``text``.
    An edit with ``end_line == start_line - 1`` inserts before ``start_line``."""
    start_line: int
    end_line: int
    text: str

    @property
    def is_insert(self) -> bool:
        return self.end_line < self.start_line

    def to_dict(self):
        return {"start_line": self.start_line, "end_line": self.end_line, "text": self.text}


def _declaration(clazz: DartClass) -> str:
    kind = "abstract class" if clazz.is_abstract else "class"
    decl = f"{kind} {clazz.name}{clazz.full_generic_type}"
    if clazz.superclass is not None:
        decl += f" extends {clazz.superclass}"
    if clazz.has_mixins:
        decl += " with " + ", ".join(clazz.mixins)
    if clazz.has_interfaces:
        decl += " implements " + ", ".join(clazz.interfaces)
    return decl + " {\n"


def class_replacement(clazz: DartClass) -> str:
    """
    Rebuild the class text from its last line to its first: the declaration
    is rewritten when supertypes changed, a new constructor follows the last
    field, inserted members precede the closing line, and replaced members
    take the place of their span.
    """
    lines = clazz.class_content.split("\n")
    chunks = []
    emitted = set()

    for i in range(clazz.ends_at_line - clazz.starts_at_line, -1, -1):
        line = (lines[i] if i < len(lines) else "") + "\n"
        line_num = clazz.starts_at_line + i

        if i == 0 and clazz.declaration_changed:
            chunks.append(_declaration(clazz))
            continue

        part = clazz.part_at_line(line_num)

        if i > 0 and line_num == clazz.props_end_at_line and clazz.new_constr is not None:
            chunks.append(line + "\n" + clazz.new_constr)
        elif i > 0 and line_num == clazz.ends_at_line and clazz.is_valid:
            chunks.append(clazz.to_insert + line)
        elif part is not None:
            if id(part) not in emitted:
                emitted.add(id(part))
                chunks.append(part.replacement + "\n")
        else:
            chunks.append(line)

    return remove_end("".join(reversed(chunks)), "\n")


def import_edit(imports: DartImports) -> Optional[TextEdit]:
    if not imports.has_imports or not imports.did_change:
        return None

    if imports.has_previous_imports:
        return TextEdit(imports.start_at_line, imports.end_at_line, imports.formatted)

    at = imports.header_end_line + 1
    lines = imports.text.split("\n")
    text = imports.formatted
    if imports.header_end_line > 0:
        text = "\n" + text
    if at > len(lines) or not is_blank(lines[at - 1]):
        text += "\n"
    return TextEdit(at, at - 1, text)


def plan_edits(classes, imports: Optional[DartImports] = None) -> list:
    """Ordered, non-overlapping edits for all changed valid classes plus imports."""
    if isinstance(classes, DartClass):
        classes = [classes]

    edits = []
    for clazz in classes:
        if not clazz.is_valid or not clazz.did_change:
            continue
        replacement = class_replacement(clazz)
        if not is_blank(replacement):
            edits.append(TextEdit(clazz.starts_at_line, clazz.ends_at_line, replacement))

    if imports is not None:
        edit = import_edit(imports)
        if edit is not None:
            edits.append(edit)

    return sorted(edits, key=lambda e: (e.start_line, e.end_line))


def apply_edits(text: str, edits) -> str:
    """Apply line edits bottom-up so earlier line numbers stay valid."""
    ordered = sorted(edits, key=lambda e: (e.start_line, e.end_line), reverse=True)

    lower_bound = None
    for edit in ordered:
        if lower_bound is not None and edit.end_line >= lower_bound:
            raise ValueError(f"Overlapping edits at line {edit.start_line}")
        lower_bound = edit.start_line

    lines = text.split("\n")
    for edit in ordered:
        lines[edit.start_line - 1: edit.end_line] = edit.text.split("\n")
    return "\n".join(lines)
