"""
dart_model.py — Structural model of parsed (or synthesized) Dart classes.
DartField is one typed member, DartClass one class declaration together with
its pending edits, ClassPart a located member span and its replacement.
"""

from dataclasses import dataclass, field
from typing import Optional

from dartforge.text_utils import remove_end, to_var_name, var_to_key

PRIMITIVE_TYPES = frozenset({"String", "num", "dynamic", "bool", "double", "int"})
WIDGET_BASES = ("StatelessWidget", "StatefulWidget")


@dataclass
class DartField:
    raw_type: str
    name: str
    key: str = ""
    line: int = 1
    is_final: bool = True
    is_const: bool = False
    is_enum: bool = False

    @classmethod
    def create(cls, raw_type: str, name: str, line: int = 1, is_final: bool = True,
               is_const: bool = False, from_json: bool = False,
               key_format: str = "default") -> "DartField":
        """Build a field with an escaped member name and its serialization key."""
        var_name = to_var_name(name)
        key = name if from_json else var_to_key(var_name, key_format)
        return cls(raw_type=raw_type, name=var_name, key=key, line=line,
                   is_final=is_final, is_const=is_const)

    @property
    def type(self) -> str:
        return remove_end(self.raw_type, "?") if self.is_nullable else self.raw_type

    @property
    def is_nullable(self) -> bool:
        return self.raw_type.endswith("?")

    def _is_collection_type(self, collection: str) -> bool:
        return self.type == collection or self.type.startswith(collection + "<")

    @property
    def is_list(self) -> bool:
        return self._is_collection_type("List")

    @property
    def is_map(self) -> bool:
        return self._is_collection_type("Map")

    @property
    def is_set(self) -> bool:
        return self._is_collection_type("Set")

    @property
    def is_collection(self) -> bool:
        return self.is_list or self.is_map or self.is_set

    @property
    def collection_type(self) -> "DartField":
        """Element field of a List/Set; maps and scalars return themselves."""
        if self.is_list or self.is_set:
            collection = "Set" if self.is_set else "List"
            bare = self.type
            if bare == collection:
                element = "dynamic"
            else:
                element = remove_end(bare[len(collection) + 1:], ">").strip()
            return DartField(raw_type=element, name=self.name, key=self.key,
                             line=self.line, is_final=self.is_final)
        return self

    @property
    def is_primitive(self) -> bool:
        return self.collection_type.type in PRIMITIVE_TYPES or self.is_map

    @property
    def def_value(self) -> str:
        if self.is_list:
            return "const []"
        if self.is_map or self.is_set:
            return "const {}"
        return {
            "String": "''",
            "num": "0",
            "int": "0",
            "double": "0.0",
            "bool": "false",
            "dynamic": "null",
        }.get(self.type, f"{self.type}.init()")

    def to_dict(self):
        return {
            "name": self.name,
            "key": self.key,
            "type": self.raw_type,
            "line": self.line,
            "nullable": self.is_nullable,
            "final": self.is_final,
            "const": self.is_const,
            "enum": self.is_enum,
            "collection": self.is_collection,
            "primitive": self.is_primitive,
        }


@dataclass
class ClassPart:
    """An existing derived member: its line span, current text and replacement."""
    name: str
    starts_at: Optional[int] = None
    ends_at: Optional[int] = None
    current: Optional[str] = None
    replacement: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.starts_at is not None and self.ends_at is not None and self.current is not None


@dataclass
class DartClass:
    name: Optional[str] = None
    full_generic_type: str = ""
    superclass: Optional[str] = None
    interfaces: list = field(default_factory=list)
    mixins: list = field(default_factory=list)
    properties: list = field(default_factory=list)  # List[DartField]
    constr: Optional[str] = None
    constr_starts_at_line: Optional[int] = None
    constr_ends_at_line: Optional[int] = None
    constr_different: bool = False
    new_constr: Optional[str] = None
    starts_at_line: Optional[int] = None
    ends_at_line: Optional[int] = None
    is_array: bool = False
    class_content: str = ""
    to_insert: str = ""
    to_replace: list = field(default_factory=list)  # List[ClassPart]
    declaration_changed: bool = False

    # ── Identity ──────────────────────────────────────────────────────────

    @property
    def generic_type(self) -> str:
        """Generic clause as used at call sites: ``<T extends num>`` -> ``<T>``."""
        parts = self.full_generic_type.split(",")
        out = []
        for i, raw in enumerate(parts):
            part = raw.strip()
            if "extends" in part:
                part = part[: part.index("extends")].strip()
                if i == len(parts) - 1:
                    part += ">"
            out.append(part)
        return ", ".join(out)

    @property
    def type(self) -> str:
        return f"{self.name}{self.generic_type}"

    @property
    def props_end_at_line(self) -> int:
        return self.properties[-1].line if self.properties else -1

    # ── Predicates ────────────────────────────────────────────────────────

    @property
    def has_superclass(self) -> bool:
        return self.superclass is not None

    @property
    def class_detected(self) -> bool:
        return self.starts_at_line is not None

    @property
    def has_ending(self) -> bool:
        return self.ends_at_line is not None

    @property
    def has_properties(self) -> bool:
        return len(self.properties) > 0

    @property
    def has_constructor(self) -> bool:
        return (
            self.constr_starts_at_line is not None
            and self.constr_ends_at_line is not None
            and self.constr is not None
        )

    @property
    def has_named_constructor(self) -> bool:
        if self.constr is not None:
            return self.constr.replace("const", "", 1).lstrip().startswith(self.name + "({")
        return True

    @property
    def has_mixins(self) -> bool:
        return bool(self.mixins)

    @property
    def has_interfaces(self) -> bool:
        return bool(self.interfaces)

    @property
    def few_props(self) -> bool:
        return len(self.properties) <= 3

    @property
    def unique_prop_names(self) -> bool:
        names = [p.name for p in self.properties]
        return len(names) == len(set(names))

    @property
    def is_valid(self) -> bool:
        return (
            self.class_detected
            and self.has_ending
            and self.has_properties
            and self.unique_prop_names
        )

    @property
    def is_widget(self) -> bool:
        return self.superclass in WIDGET_BASES

    @property
    def is_state(self) -> bool:
        return (
            not self.is_widget
            and self.superclass is not None
            and self.superclass.startswith("State<")
        )

    @property
    def is_abstract(self) -> bool:
        return self.class_content.lstrip().startswith("abstract class")

    @property
    def uses_equatable(self) -> bool:
        return self.superclass == "Equatable" or "EquatableMixin" in self.mixins

    @property
    def enum_fields(self) -> list:
        return [p for p in self.properties if p.is_enum]

    @property
    def did_change(self) -> bool:
        return (
            len(self.to_insert) > 0
            or len(self.to_replace) > 0
            or self.constr_different
            or self.declaration_changed
        )

    @property
    def issue(self) -> str:
        msg = f"{self.name} couldn't be converted to a data class: "
        if not self.has_properties:
            return msg + "Class must have at least one property!"
        if not self.has_ending:
            return msg + "Class has no ending!"
        if not self.unique_prop_names:
            return msg + "Class doesn't have unique property names!"
        return remove_end(msg, ": ") + "."

    # ── Pending edits ─────────────────────────────────────────────────────

    def part_at_line(self, line: int) -> Optional[ClassPart]:
        for part in self.to_replace:
            if part.starts_at <= line <= part.ends_at:
                return part
        return None

    def to_dict(self):
        return {
            "name": self.name,
            "generics": self.full_generic_type,
            "superclass": self.superclass,
            "mixins": list(self.mixins),
            "interfaces": list(self.interfaces),
            "starts_at_line": self.starts_at_line,
            "ends_at_line": self.ends_at_line,
            "constructor": {
                "starts_at_line": self.constr_starts_at_line,
                "ends_at_line": self.constr_ends_at_line,
                "text": self.constr,
            } if self.has_constructor else None,
            "properties": [p.to_dict() for p in self.properties],
            "is_valid": self.is_valid,
            "is_widget": self.is_widget,
            "is_abstract": self.is_abstract,
            "issue": None if self.is_valid else self.issue,
        }
