"""
json_import.py — Infers Dart classes from a JSON document.
Walks the JSON tree once to build one class per object (children after
their parent), then drops structurally identical classes in a separate pass.
"""

import json
from dataclasses import dataclass
from typing import Optional

from dartforge.dart_model import DartClass, DartField
from dartforge.text_utils import capitalize, create_file_name, remove_end, to_var_name

PRIMITIVE_ARRAY_ERROR = "Primitive JSON arrays are not supported! Please serialize them directly."
MALFORMED_ERROR = "The provided JSON is malformed or couldn't be parsed!"


class JsonImportError(ValueError):
    pass


@dataclass
class DartFile:
    clazz: DartClass
    name: str
    content: str

    @classmethod
    def for_class(cls, clazz: DartClass, content: Optional[str] = None) -> "DartFile":
        return cls(clazz=clazz, name=create_file_name(clazz.name), content=content or clazz.class_content)


def get_primitive(value) -> Optional[str]:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "double"
    if isinstance(value, str):
        return "String"
    return None


def _singular(key: str) -> str:
    if key.endswith("ies"):
        return remove_end(key, "ies") + "y"
    return remove_end(key, "s")


def _collect_classes(value, key: str, out: list):
    """Create the class for ``value`` (object or array) and recurse into nested objects."""
    clazz = DartClass(starts_at_line=1, name=capitalize(key))

    is_array = isinstance(value, list)
    if is_array:
        clazz.is_array = True
        clazz.name += "s"
        entries = [(remove_end(clazz.name.lower(), "s"), value[0])] if value else []
    else:
        out.append(clazz)
        entries = list(value.items())

    line = 1
    clazz.class_content = f"class {clazz.name} {{\n"
    for k, item in entries:
        field_type = get_primitive(item)

        if field_type is None:
            if item is None:
                field_type = "dynamic"
            elif isinstance(item, list):
                first = item[0] if item else None
                element = get_primitive(first)
                if element is not None:
                    field_type = f"List<{element}>"
                elif isinstance(first, dict):
                    list_type = _singular(k)
                    _collect_classes(first, list_type, out)
                    field_type = f"List<{capitalize(list_type)}>"
                else:
                    field_type = "List<dynamic>"
            else:
                _collect_classes(item, k, out)
                field_type = f"List<{capitalize(k)}>" if is_array else capitalize(k)

        line += 1
        clazz.properties.append(DartField.create(field_type, k, line, from_json=True))
        clazz.class_content += f"  final {field_type} {to_var_name(k)};\n"

    line += 1
    clazz.ends_at_line = line
    clazz.class_content += "}"
    return clazz


def remove_duplicates(classes: list) -> list:
    """Keep the first of every group of classes with identical bodies."""
    seen = set()
    result = []
    for clazz in classes:
        if clazz.class_content not in seen:
            seen.add(clazz.class_content)
            result.append(clazz)
    return result


def read_json_classes(source: str, class_name: str) -> list:
    """
    Parse ``source`` and return one DartFile per inferred class, root first.
    Raises JsonImportError for malformed JSON and for arrays of primitives.
    """
    try:
        data = json.loads(source)
    except ValueError as e:
        raise JsonImportError(MALFORMED_ERROR) from e

    if isinstance(data, list) and not any(isinstance(v, dict) for v in data):
        raise JsonImportError(PRIMITIVE_ARRAY_ERROR)
    if not isinstance(data, (dict, list)):
        raise JsonImportError(MALFORMED_ERROR)

    classes = []
    _collect_classes(data, capitalize(class_name), classes)
    return [DartFile.for_class(c) for c in remove_duplicates(classes)]


def generated_type_count(classes: list, raw_type: str) -> int:
    """How many generated classes carry the given (non-primitive) type name."""
    if DartField(raw_type=raw_type, name="x").is_primitive:
        return 0
    return sum(1 for c in classes if c.name == raw_type)
