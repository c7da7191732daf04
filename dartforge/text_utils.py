"""
text_utils.py — Lexical helpers shared by the parser, the generator and the
JSON importer. Pure string functions, no state.
"""

import re

DART_KEYWORDS = frozenset({
    "assert", "break", "case", "catch", "class", "const", "continue",
    "default", "do", "else", "enum", "extends", "false", "final",
    "finally", "for", "if", "in", "is", "new", "null", "rethrow",
    "return", "super", "switch", "this", "throw", "true", "try",
    "var", "void", "while", "with",
})

# Characters that may appear in JSON keys but never in a Dart identifier.
_NAME_SEPARATORS = "-~:#$ ./"


def is_blank(source) -> bool:
    return not source or source.strip() == ""


def count(source: str, match: str) -> int:
    return source.count(match)


def remove_end(source: str, end) -> str:
    """Strip a suffix; a list of suffixes is applied in order on the trimmed text."""
    if isinstance(end, (list, tuple)):
        result = source.strip()
        for e in end:
            result = remove_end(result, e).strip()
        return result
    if end and source.endswith(end):
        return source[: len(source) - len(end)]
    return source


def remove_start(source: str, start) -> str:
    """Strip a prefix; a list of prefixes is applied in order on the trimmed text."""
    if isinstance(start, (list, tuple)):
        result = source.strip()
        for s in start:
            result = remove_start(result, s).strip()
        return result
    if start and source.startswith(start):
        return source[len(start):]
    return source


def indent(source: str) -> str:
    """Indent every line by two spaces; the result always ends with a newline."""
    return "".join(f"  {line}\n" for line in source.split("\n"))


def are_strict_equal(a: str, b: str) -> bool:
    """Compare two texts ignoring all whitespace."""
    return re.sub(r"\s", "", a or "") == re.sub(r"\s", "", b or "")


def includes_one(source: str, matches, word_based: bool = True) -> bool:
    """True if any match occurs, as a whole space-separated word or as a substring."""
    if not word_based:
        return any(m in source for m in matches)
    words = source.split(" ")
    return any(word == m for word in words for m in matches)


def includes_all(source: str, matches) -> bool:
    return all(m in source for m in matches)


def capitalize(source: str) -> str:
    if not source:
        return source
    return source[0].upper() + source[1:]


def to_var_name(source: str) -> str:
    """Turn an arbitrary key into a valid Dart identifier."""
    result = source
    for char in _NAME_SEPARATORS:
        if char in result:
            parts = result.split(char)
            result = parts[0] + "".join(capitalize(p) for p in parts[1:])

    if not result:
        result = source

    if result in DART_KEYWORDS:
        result += "_"

    if result and result[0].isdigit():
        result = "n" + result

    return result


def camel_case(source: str) -> str:
    return re.sub(
        r"[-_][a-z]",
        lambda m: m.group(0).upper().replace("-", "").replace("_", ""),
        source,
    )


def snake_case(source: str) -> str:
    words = re.split(r" |\B(?=[A-Z])", re.sub(r"\W+", " ", source))
    return "_".join(w.lower() for w in words)


def var_to_key(name: str, key_format: str = "default") -> str:
    """Serialization key for a member name under the configured key format."""
    if key_format == "snake_case":
        return snake_case(name)
    if key_format == "camelCase":
        return camel_case(name)
    return name


def create_file_name(class_name: str) -> str:
    """UserProfile -> user_profile"""
    out = []
    for i, c in enumerate(class_name):
        if c.isupper():
            out.append(c.lower() if i == 0 else "_" + c.lower())
        else:
            out.append(c)
    return "".join(out)


def split_keeping_generics(line: str) -> list:
    """
    Split a declaration line on spaces while keeping anything between
    balanced angle brackets attached to its word, so that
    ``class Foo<T extends Bar> extends Baz {`` yields
    ``['class', 'Foo<T extends Bar>', 'extends', 'Baz']``.
    Stops at the first opening curly brace outside of generics.
    """
    words = []
    index = 0
    generics = 0
    prev = ""
    closed = False

    for i, char in enumerate(line):
        if char == "<":
            generics += 1
        elif char == ">" and prev != "=":
            generics = max(0, generics - 1)
        prev = char

        if generics == 0 and char in (" ", "{"):
            word = line[index:i].strip()
            if not word:
                if char == "{":
                    closed = True
                    break
                continue

            if word.startswith("<") and words:
                words[-1] += word
            else:
                words.append(word)

            index = i
            if char == "{":
                closed = True
                break

    if not closed:
        tail = line[index:].strip()
        if tail:
            if tail.startswith("<") and words:
                words[-1] += tail
            else:
                words.append(tail)

    return words
