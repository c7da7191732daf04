"""
dart_parser.py — Line scanner that recovers class declarations from Dart
source: name, generics, supertype, mixins, interfaces, constructor span and
simple field declarations. Tracks curly/paren depth instead of using a
grammar, so it only recognizes class-shaped code reliably enough to
regenerate boilerplate.
"""

import re

from dartforge.dart_model import DartClass, DartField
from dartforge.text_utils import (
    count, includes_all, includes_one, remove_end, split_keeping_generics,
)

_ENUM_MARKER = re.compile(r".*//(\s*)enum")
_COMMENT_STARTS = ("//", "/*", "*")
_NON_FIELD_WORDS = ["static", "set", "get", "return", "factory"]
_NON_FIELD_CHARS = ["{", "}", "=>", "@"]


def _is_class_line(line: str) -> bool:
    stripped = line.lstrip()
    return stripped.startswith("class ") or stripped.startswith("abstract class ")


def _read_declaration(clazz: DartClass, line: str):
    """Fill name, generics, supertype, mixins and interfaces from a declaration line."""
    class_next = extends_next = mixins_next = implements_next = False

    for word in split_keeping_generics(line):
        word = word.strip()
        if not word:
            continue

        if word == "class":
            class_next = True
        elif word == "extends":
            extends_next = True
        elif extends_next:
            extends_next = False
            clazz.superclass = word
        elif word == "with":
            mixins_next, extends_next, implements_next = True, False, False
        elif word == "implements":
            mixins_next, extends_next, implements_next = False, False, True
        elif class_next:
            class_next = False
            if "<" in word:
                clazz.full_generic_type = word[word.index("<"): word.rindex(">") + 1]
                word = word[: word.index("<")]
            clazz.name = word
        elif mixins_next:
            mixin = remove_end(word, ",").strip()
            if mixin:
                clazz.mixins.append(mixin)
        elif implements_next:
            impl = remove_end(word, ",").strip()
            if impl:
                clazz.interfaces.append(impl)


def _is_field_line(clazz: DartClass, line: str) -> bool:
    stripped = line.lstrip()
    return (
        not stripped.startswith(clazz.name)
        and not stripped.startswith(_COMMENT_STARTS)
        and not includes_one(line, _NON_FIELD_CHARS, word_based=False)
        and not includes_one(line.strip(), _NON_FIELD_WORDS)
        and not includes_all(line, ["final ", "="])
        and (clazz.constr_starts_at_line is None or "final " in line)
        and not re.sub(r"\s", "", line).endswith(");")
    )


def _read_field(line: str, line_pos: int, key_format: str):
    """Split a field line into (type, name) and build the field, or None."""
    field_type = None
    name = None
    is_final = False
    is_const = False

    words = line.strip().split(" ")
    for i, word in enumerate(words):
        is_last = i == len(words) - 1
        if not word or word in ("{", "}"):
            continue

        if word == "final":
            is_final = True
            continue
        if i == 0 and word == "const":
            is_const = True
            continue
        if word == "const":
            continue

        is_variable = word.endswith(";") or (not is_last and words[i + 1] == "=")
        is_variable = is_variable and "(" not in word and ")" not in word
        if is_variable:
            if name is None:
                name = remove_end(word, ";")
        elif field_type is None:
            field_type = word
        elif name is None:
            field_type += " " + word

    if field_type is None or name is None:
        return None
    return DartField.create(field_type, name, line_pos, is_final, is_const,
                            key_format=key_format)


def parse_dart_classes(text: str, key_format: str = "default") -> list:
    """
    Scan Dart source and return one DartClass per top-level class
    declaration. State classes (``extends State<...>``) are scanned for
    bookkeeping but never returned.
    """
    classes = []
    clazz = DartClass()
    lines = text.split("\n")
    curly_brackets = 0
    brackets = 0

    for i, line in enumerate(lines):
        line_pos = i + 1
        class_line = _is_class_line(line)

        if class_line:
            clazz = DartClass(starts_at_line=line_pos)
            curly_brackets = 0
            brackets = 0
            _read_declaration(clazz, line)
            if clazz.name is None:
                clazz.name = ""
            if not clazz.is_state:
                classes.append(clazz)

        if not clazz.class_detected:
            continue

        curly_brackets += count(line, "{") - count(line, "}")
        brackets += count(line, "(") - count(line, ")")

        # Constructor: opens on a line starting with `Name(`, closes on paren balance.
        includes_constr = line.replace("const", "", 1).lstrip().startswith(clazz.name + "(")
        if includes_constr and not class_line and clazz.constr_starts_at_line is None:
            clazz.constr_starts_at_line = line_pos

        if clazz.constr_starts_at_line is not None and clazz.constr_ends_at_line is None:
            clazz.constr = line + "\n" if clazz.constr is None else clazz.constr + line + "\n"
            if brackets == 0:
                clazz.constr_ends_at_line = line_pos
                clazz.constr = remove_end(clazz.constr, "\n")

        clazz.class_content += line
        if curly_brackets != 0:
            clazz.class_content += "\n"
        else:
            clazz.ends_at_line = line_pos
            clazz = DartClass()
            continue

        if brackets == 0 and curly_brackets == 1 and not class_line and _is_field_line(clazz, line):
            prop = _read_field(line, line_pos, key_format)
            if prop is not None:
                if i > 0:
                    prop.is_enum = _ENUM_MARKER.match(lines[i - 1]) is not None
                clazz.properties.append(prop)

    return classes
