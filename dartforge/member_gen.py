"""
member_gen.py — Generates data-class members (constructor, init factory,
copyWith, toMap/fromMap, toJson/fromJson, toString, ==, hashCode, Equatable
props) for parsed Dart classes.

Every member goes through append-or-replace: an existing member is located
by its signature and replaced only when its text differs (ignoring
whitespace) from the freshly generated one; missing members are appended
before the closing brace of the class.
"""

from dataclasses import dataclass
from typing import Optional

from dartforge.config import ProjectInfo, Settings
from dartforge.dart_model import ClassPart, DartClass, DartField
from dartforge.dart_parser import parse_dart_classes
from dartforge.imports import DartImports
from dartforge.text_utils import (
    are_strict_equal, count, indent, is_blank, remove_end, remove_start,
)

SERIALIZATION_KEYS = ("toMap.enabled", "fromMap.enabled", "toJson.enabled", "fromJson.enabled")

_PARSERS = {
    "double": "parseDouble",
    "int": "parseInt",
    "String": "parseString",
    "bool": "parseBool",
}

_HASH_LIST_OVERRIDES = [
    "package:flutter/material.dart",
    "package:flutter/cupertino.dart",
    "package:flutter/widgets.dart",
]

# Member lookup states
_SEEKING = "seeking"
_IN_SINGLE_LINE = "single-line"
_IN_BLOCK = "block"
_DONE = "done"


@dataclass
class OldParameter:
    name: str
    text: str
    is_this: bool


def _normalize_signature(src: str) -> str:
    """Drop whitespace and anything inside generics: ``Map<String, dynamic> toMap()`` -> ``MaptoMap()``."""
    result = []
    generics = 0
    prev = ""
    for char in src:
        if char == "<":
            generics += 1
        if not char.isspace() and generics == 0:
            result.append(char)
        if prev != "=" and char == ">":
            generics -= 1
        prev = char
    return "".join(result)


def _split_parameters(source: str) -> list:
    """Split a parameter list on top-level commas, line by line; comments are dropped."""
    params = []
    for line in source.split("\n"):
        depth = 0
        current = ""
        for char in line:
            if char in "([{<":
                depth += 1
            elif char in ")]}>":
                depth -= 1
            if char == "," and depth == 0:
                params.append(current)
                current = ""
            else:
                current += char
        params.append(current)
    return [p.strip() for p in params if p.strip() and not p.strip().startswith("//")]


def collection_equality_fn(props) -> Optional[str]:
    """Narrowest DeepCollectionEquality alias for the collection fields of a class."""
    collections = [p for p in props if p.is_collection]
    if not collections:
        return None
    if all(p.is_list for p in collections):
        return "listEquals"
    if all(p.is_map for p in collections):
        return "mapEquals"
    if all(p.is_set for p in collections):
        return "setEquals"
    return "collectionEquals"


def zero_value(prop: DartField) -> str:
    """Value used by the init factory for a field."""
    if prop.is_collection:
        return "const []" if prop.is_list else "const {}"
    if prop.is_enum:
        return f"{prop.type}.values.first"
    if prop.type == "String":
        return "''"
    return prop.def_value


def _encode_value(prop: DartField, name: Optional[str] = None) -> str:
    el = prop.collection_type if prop.is_collection else prop
    name = name or el.name
    null_safe = "?" if el.is_nullable else ""

    if el.type == "DateTime":
        return f"{name}{null_safe}.millisecondsSinceEpoch"
    if el.type == "Color":
        return f"{name}{null_safe}.value"
    if el.type == "IconData":
        return f"{name}{null_safe}.codePoint"
    if el.is_primitive:
        return name
    return f"{name}{null_safe}.toMap()"


def _decode_value(prop: DartField, value: str) -> str:
    el = prop.collection_type if prop.is_collection else prop

    if el.type == "DateTime":
        return f"DateTime.fromMillisecondsSinceEpoch(ParsingUtils.parseInt({value}))"
    if el.type == "Color":
        return f"Color(ParsingUtils.parseInt({value}))"
    if el.type == "IconData":
        return f"IconData(ParsingUtils.parseInt({value}), fontFamily: 'MaterialIcons')"
    return f"{el.type}.fromMap({value})"


def _parse_primitive(type_name: str, value: str) -> str:
    fn = _PARSERS.get(type_name)
    return f"ParsingUtils.{fn}({value})" if fn else value


class DataClassGenerator:
    """
    Runs member generation for every valid class of a Dart source text.
    ``part`` restricts generation to one member group (used by quick fixes):
    constructor, init, copyWith, serialization, toString, equality,
    useEquatable.
    """

    def __init__(self, text: str, settings: Optional[Settings] = None,
                 project: Optional[ProjectInfo] = None, classes: Optional[list] = None,
                 part: Optional[str] = None):
        self.text = text
        self.settings = settings or Settings.from_dict()
        self.project = project or ProjectInfo()
        self.part = part
        if classes is None:
            classes = parse_dart_classes(text, self.settings.get("json.key_format"))
        self.classes = classes
        self.imports = DartImports(text, self.project)
        self.clazz = None
        self.generate_data_classes()

    def is_part_selected(self, part: str) -> bool:
        return self.part is None or self.part == part

    def _enabled(self, key: str, part: str) -> bool:
        return bool(self.settings.get(key)) and self.is_part_selected(part)

    def requires_import(self, imp: str, valid_overrides=()):
        self.imports.requires_import(imp, valid_overrides)

    def generate_data_classes(self):
        for clazz in self.classes:
            if not clazz.is_valid:
                continue
            self.clazz = clazz

            if self._enabled("constructor.enabled", "constructor"):
                self.insert_constructor(clazz)

            if clazz.is_widget:
                continue

            if not clazz.is_abstract:
                if self._enabled("init.enabled", "init"):
                    self.insert_init_factory(clazz)
                if self._enabled("copyWith.enabled", "copyWith"):
                    self.insert_copy_with(clazz)
                if self._enabled("toMap.enabled", "serialization"):
                    self.insert_to_map(clazz)
                if self._enabled("fromMap.enabled", "serialization"):
                    self.insert_from_map(clazz)
                if self._enabled("toJson.enabled", "serialization"):
                    self.insert_to_json(clazz)
                if self._enabled("fromJson.enabled", "serialization"):
                    self.insert_from_json(clazz)

            if self._enabled("toString.enabled", "toString"):
                self.insert_to_string(clazz)

            if (clazz.uses_equatable or self.settings.get("useEquatable")) and self.is_part_selected("useEquatable"):
                self.insert_equatable(clazz)
            else:
                if self._enabled("equality.enabled", "equality"):
                    self.insert_equality(clazz)
                if self._enabled("hashCode.enabled", "equality"):
                    self.insert_hash(clazz)

    # ── Locating existing members ─────────────────────────────────────────

    def find_part(self, name: str, finder: str, clazz: DartClass) -> Optional[ClassPart]:
        """
        Locate a member whose first line starts with ``finder``. Block members
        must open at class depth (curly depth 2 after the signature line) and
        end when the depth falls back to 1; ``=>`` members end at the first
        line ending in ``;``.
        """
        target = _normalize_signature(finder)
        part = ClassPart(name)
        state = _SEEKING
        curlies = 0

        for offset, line in enumerate(clazz.class_content.split("\n")):
            line_num = clazz.starts_at_line + offset
            curlies += count(line, "{") - count(line, "}")

            if state == _SEEKING:
                if not _normalize_signature(line).startswith(target):
                    continue
                if "=>" in line:
                    state = _IN_SINGLE_LINE
                elif curlies == 2:
                    state = _IN_BLOCK
                else:
                    continue
                part.starts_at = line_num
                part.current = line + "\n"
                if state == _IN_SINGLE_LINE and line.rstrip().endswith(";"):
                    part.ends_at = line_num
                    state = _DONE
            elif state == _IN_SINGLE_LINE:
                part.current += line + "\n"
                if line.rstrip().endswith(";"):
                    part.ends_at = line_num
                    state = _DONE
            elif state == _IN_BLOCK:
                if curlies >= 2:
                    part.current += line + "\n"
                elif curlies == 1:
                    part.current += line
                    part.ends_at = line_num
                    state = _DONE
                else:
                    break

            if state == _DONE:
                break

        return part if part.is_valid else None

    def append_or_replace(self, name: str, method: str, finder: str, clazz: DartClass):
        part = self.find_part(name, finder, clazz)
        replacement = remove_end(indent(method.replace("@override\n", "")), "\n")

        if part is not None:
            part.replacement = replacement
            if not are_strict_equal(part.current, part.replacement):
                clazz.to_replace.append(part)
        else:
            clazz.to_insert += "\n" + indent(method)

    # ── Constructor ───────────────────────────────────────────────────────

    def find_old_constr_properties(self, clazz: DartClass) -> list:
        """Parameters of the existing constructor, in source order."""
        if not clazz.has_constructor:
            return []

        chars = []
        brackets = 0
        found = False
        for c in clazz.constr:
            if c == "(":
                if found:
                    chars.append(c)
                brackets += 1
                found = True
                continue
            if c == ")":
                brackets -= 1
                if found and brackets == 0:
                    break
            if brackets >= 1:
                chars.append(c)

        old_constr = remove_start("".join(chars), ["{", "["])
        old_constr = remove_end(old_constr, ["}", "]"])

        params = []
        for arg in _split_parameters(old_constr):
            formatted = arg.replace("required", "", 1).strip()
            if "=" in formatted:
                formatted = formatted[: formatted.index("=")].strip()

            name = None
            is_this = False
            if formatted.startswith("this."):
                name = formatted[len("this."):]
                is_this = True
            elif formatted.startswith("super."):
                name = formatted[len("super."):]
            else:
                words = formatted.split(" ")
                if len(words) > 1 and not is_blank(words[1]):
                    name = words[1]

            if name is not None:
                params.append(OldParameter(remove_end(name.strip(), ","), arg + ",\n", is_this))

        return params

    def insert_constructor(self, clazz: DartClass):
        if clazz.constr is not None and not clazz.has_constructor:
            # Unbalanced constructor; its span cannot be replaced safely.
            return

        with_defaults = self.settings.get("constructor.default_values")
        constr = ""
        start_bracket, end_bracket = "({", "})"

        if clazz.constr is not None:
            if clazz.constr.lstrip().startswith("const"):
                constr += "const "
            f_constr = clazz.constr.replace("const", "", 1).lstrip()
            params = f_constr[len(clazz.name) + 1:]

            if f_constr.startswith(clazz.name + "(["):
                start_bracket, end_bracket = "([", "])"
            elif f_constr.startswith(clazz.name + "({"):
                start_bracket, end_bracket = "({", "})"
            elif "{" in params.split(")")[0] or "[" in params.split(")")[0]:
                # Mixed positional and optional parameters are left as written.
                return
            else:
                start_bracket, end_bracket = "(", ")"
        elif clazz.is_widget:
            constr += "const "

        constr += clazz.name + start_bracket + "\n"

        old_props = self.find_old_constr_properties(clazz)
        uses_super_key = any(p.text.startswith("super.key") for p in old_props)

        if clazz.is_widget and not any(p.name == "key" and not p.is_this for p in old_props):
            constr += "  Key? key,\n"

        for prop in old_props:
            if not prop.is_this:
                constr += "  " + prop.text

        by_name = {p.name: p for p in old_props}
        for prop in clazz.properties:
            old = by_name.get(prop.name)
            if old is not None:
                if old.is_this:
                    constr += "  " + old.text
                continue

            parameter = f"this.{prop.name}"
            constr += "  "

            if not prop.is_nullable:
                has_default = (
                    with_defaults
                    and (prop.is_primitive or prop.is_collection)
                    and prop.raw_type != "dynamic"
                    and start_bracket != "("
                )
                if has_default:
                    constr += f"{parameter} = {prop.def_value},\n"
                elif start_bracket == "({":
                    constr += f"required {parameter},\n"
                else:
                    constr += f"{parameter},\n"
            else:
                constr += f"{parameter},\n"

        ending = None
        if clazz.constr is not None:
            if " : " in clazz.constr:
                ending = clazz.constr[clazz.constr.index(" : ") + 1:]
            elif clazz.constr.rstrip().endswith("{"):
                ending = clazz.constr[clazz.constr.rindex("{"):]

        if ending is not None:
            constr += f"{end_bracket} {ending}"
        elif clazz.is_widget and not uses_super_key:
            constr += end_bracket + " : super(key: key);"
        else:
            constr += end_bracket + ";"

        if clazz.has_constructor:
            clazz.constr_different = not are_strict_equal(clazz.constr, constr)
            if clazz.constr_different:
                clazz.to_replace.append(ClassPart(
                    "constructor",
                    clazz.constr_starts_at_line,
                    clazz.constr_ends_at_line,
                    clazz.constr,
                    remove_end(indent(constr), "\n"),
                ))
        else:
            clazz.constr_different = True
            clazz.new_constr = indent(constr)

    # ── Factories and copyWith ────────────────────────────────────────────

    def _argument(self, clazz: DartClass, prop: DartField) -> str:
        return f"{prop.name}: " if clazz.has_named_constructor else ""

    def insert_init_factory(self, clazz: DartClass):
        method = f"factory {clazz.name}.init() => {clazz.type}(\n"
        for prop in clazz.properties:
            method += f"  {self._argument(clazz, prop)}{zero_value(prop)},\n"
        method += ");"

        self.append_or_replace("init", method, f"factory {clazz.name}.init()", clazz)

    def insert_copy_with(self, clazz: DartClass):
        uses_value_getter = self.settings.get("copyWith.usesValueGetter")
        needs_value_getter = False

        method = f"{clazz.type} copyWith({{\n"
        for prop in clazz.properties:
            if uses_value_getter and prop.is_nullable:
                needs_value_getter = True
                method += f"  ValueGetter<{prop.raw_type}>? {prop.name},\n"
            else:
                method += f"  {prop.type}? {prop.name},\n"
        method += "}) {\n"
        method += f"  return {clazz.type}(\n"

        for prop in clazz.properties:
            arg = self._argument(clazz, prop)
            if uses_value_getter and prop.is_nullable:
                method += f"    {arg}{prop.name} != null ? {prop.name}() : this.{prop.name},\n"
            else:
                method += f"    {arg}{prop.name} ?? this.{prop.name},\n"

        method += "  );\n"
        method += "}"

        if needs_value_getter:
            self.requires_import("package:flutter/widgets.dart")

        self.append_or_replace("copyWith", method, f"{clazz.name} copyWith(", clazz)

    # ── Serialization ─────────────────────────────────────────────────────

    def insert_to_map(self, clazz: DartClass):
        method = "Map<String, dynamic> toMap() {\n"
        method += "  return {\n"
        for prop in clazz.properties:
            method += f"    '{prop.key}': "
            null_safe = "?" if prop.is_nullable else ""

            if prop.is_enum:
                method += f"{prop.name}{null_safe}.index,\n"
            elif prop.is_collection:
                if prop.is_map or prop.collection_type.is_primitive:
                    to_list = f"{null_safe}.toList()" if prop.is_set else ""
                    method += f"{prop.name}{to_list},\n"
                else:
                    method += f"{prop.name}{null_safe}.map((x) => {_encode_value(prop, 'x')}).toList(),\n"
            else:
                method += _encode_value(prop) + ",\n"
        method += "  };\n"
        method += "}"

        self.append_or_replace("toMap", method, "Map<String, dynamic> toMap()", clazz)

    def insert_from_map(self, clazz: DartClass):
        utils_import = self.settings.get("fromMap.parsing_utils_import")
        if utils_import:
            self.requires_import(utils_import)

        method = f"factory {clazz.name}.fromMap(Map<String, dynamic> map) {{\n"
        method += f"  return {clazz.type}(\n"
        for prop in clazz.properties:
            method += f"    {self._argument(clazz, prop)}"
            value = f"map['{prop.key}']"
            null_check = not prop.is_primitive and prop.is_nullable

            if null_check:
                method += f"{value} != null ? "

            if prop.is_enum:
                method += f"{prop.type}.values[ParsingUtils.parseInt({value})]"
            elif prop.is_collection:
                empty = "const {}" if prop.is_map else "const []"
                method += f"{prop.type}.from("
                if prop.is_primitive:
                    element = prop.collection_type.type
                    if not prop.is_map and element in _PARSERS:
                        method += f"{value}?.map((x) => {_parse_primitive(element, 'x')}) ?? {empty}"
                    else:
                        method += f"{value} ?? {empty}"
                else:
                    method += f"{value}?.map((x) => {_decode_value(prop, 'x')}) ?? {empty}"
                method += ")"
            elif prop.is_primitive:
                method += _parse_primitive(prop.type, value)
            elif null_check or prop.type in ("DateTime", "Color", "IconData"):
                method += _decode_value(prop, value)
            else:
                method += f"{value} == null ? {prop.type}.init() : {_decode_value(prop, value)}"

            if null_check:
                method += " : null"

            method += ",\n"
        method += "  );\n"
        method += "}"

        self.append_or_replace(
            "fromMap", method, f"factory {clazz.name}.fromMap(Map<String, dynamic> map)", clazz
        )

    def insert_to_json(self, clazz: DartClass):
        self.requires_import("dart:convert")
        method = "String toJson() => json.encode(toMap());"
        self.append_or_replace("toJson", method, "String toJson()", clazz)

    def insert_from_json(self, clazz: DartClass):
        self.requires_import("dart:convert")
        method = (
            f"factory {clazz.name}.fromJson(String source) => "
            f"{clazz.name}.fromMap(json.decode(source));"
        )
        self.append_or_replace("fromJson", method, f"factory {clazz.name}.fromJson(String source)", clazz)

    # ── toString / equality / hashCode ────────────────────────────────────

    def insert_to_string(self, clazz: DartClass):
        short = clazz.few_props
        pairs = ", ".join(f"{p.name}: ${p.name}" for p in clazz.properties)

        method = "@override\n"
        if short:
            method += f"String toString() => '{clazz.name}({pairs})';"
        else:
            method += "String toString() {\n"
            method += f"  return '{clazz.name}({pairs})';\n"
            method += "}"

        self.append_or_replace("toString", method, "String toString()", clazz)

    def insert_equality(self, clazz: DartClass):
        props = clazz.properties
        equality_fn = collection_equality_fn(props)
        is_flutter = self.project.is_flutter

        if equality_fn is not None:
            if is_flutter:
                self.requires_import("package:flutter/foundation.dart")
            else:
                self.requires_import("package:collection/collection.dart")

        method = "@override\n"
        method += "bool operator ==(Object other) {\n"
        method += "  if (identical(this, other)) return true;\n"
        if equality_fn is not None and not is_flutter:
            method += f"  final {equality_fn} = const DeepCollectionEquality().equals;\n"
        method += "\n"
        method += f"  return other is {clazz.type} &&\n"

        checks = []
        for prop in props:
            if prop.is_collection:
                fn = equality_fn
                if is_flutter:
                    fn = "setEquals" if prop.is_set else "mapEquals" if prop.is_map else "listEquals"
                checks.append(f"    {fn}(other.{prop.name}, {prop.name})")
            else:
                checks.append(f"    other.{prop.name} == {prop.name}")
        method += " &&\n".join(checks) + ";\n"
        method += "}"

        self.append_or_replace("equality", method, "bool operator ==", clazz)

    def insert_hash(self, clazz: DartClass):
        use_jenkins = self.settings.get("hashCode.use_jenkins")
        short = not use_jenkins and clazz.few_props
        props = clazz.properties

        method = "@override\n"
        method += "int get hashCode " + ("=>" if short else "{\n  return ")

        if use_jenkins:
            self.requires_import("dart:ui", _HASH_LIST_OVERRIDES)
            method += "hashList([\n"
            for prop in props:
                method += f"    {prop.name},\n"
            method += "  ]);"
        elif short:
            method += " " + " ^ ".join(f"{p.name}.hashCode" for p in props) + ";"
        else:
            method += " ^\n".join(
                ("" if i == 0 else "    ") + f"{p.name}.hashCode" for i, p in enumerate(props)
            ) + ";"

        if not short:
            method += "\n}"

        self.append_or_replace("hashCode", method, "int get hashCode", clazz)

    # ── Equatable ─────────────────────────────────────────────────────────

    def add_equatable_details(self, clazz: DartClass):
        if clazz.has_superclass and "Base" in clazz.superclass:
            return

        self.requires_import("package:equatable/equatable.dart")

        if not clazz.uses_equatable:
            if clazz.has_superclass:
                self.add_mixin("EquatableMixin")
            else:
                self.set_super_class("Equatable")

    def insert_equatable(self, clazz: DartClass):
        self.add_equatable_details(clazz)

        props = clazz.properties
        has_nullable = any(p.is_nullable for p in props)
        short = len(props) <= 4
        list_type = "List<Object?>" if has_nullable else "List<Object>"

        method = "@override\n"
        if short:
            names = ", ".join(p.name for p in props)
            method += f"{list_type} get props => [{names}];"
        else:
            method += f"{list_type} get props {{\n"
            method += "  return [\n"
            for prop in props:
                method += f"    {prop.name},\n"
            method += "  ];\n"
            method += "}"

        self.append_or_replace("props", method, "List<Object> get props", clazz)

    def add_mixin(self, mixin: str):
        if mixin not in self.clazz.mixins:
            self.clazz.mixins.append(mixin)
            self.clazz.declaration_changed = True

    def set_super_class(self, superclass: str):
        if self.clazz.superclass != superclass:
            self.clazz.superclass = superclass
            self.clazz.declaration_changed = True


def parsing_utils_source() -> str:
    """Dart helper class called by generated fromMap factories."""
    return """class ParsingUtils {
  static int parseInt(dynamic value) {
    if (value == null) return 0;
    if (value is int) return value;
    if (value is double) return value.toInt();
    if (value is String) return int.tryParse(value) ?? 0;
    return 0;
  }

  static double parseDouble(dynamic value) {
    if (value == null) return 0.0;
    if (value is double) return value;
    if (value is int) return value.toDouble();
    if (value is String) return double.tryParse(value) ?? 0.0;
    return 0.0;
  }

  static String parseString(dynamic value) {
    if (value == null) return '';
    return value.toString();
  }

  static bool parseBool(dynamic value) {
    if (value == null) return false;
    if (value is bool) return value;
    if (value is num) return value != 0;
    if (value is String) return value.toLowerCase() == 'true';
    return false;
  }
}
"""
