"""
Tests for dartforge/member_gen.py
Member synthesis through DataClassGenerator and the planned class text.
"""

import pytest

from dartforge.config import ProjectInfo, Settings
from dartforge.dart_model import DartField
from dartforge.edit_planner import apply_edits, class_replacement, plan_edits
from dartforge.member_gen import (
    DataClassGenerator, collection_equality_fn, parsing_utils_source, zero_value,
)


def generate(source, settings=None, project=None):
    generator = DataClassGenerator(source, settings, project)
    return generator, apply_edits(source, plan_edits(generator.classes, generator.imports))


class TestPersonDataClass:
    def test_all_members(self, person_source):
        _, text = generate(person_source)

        assert text.startswith("import 'dart:convert';\n\nclass Person {")
        assert "  Person({\n    required this.name,\n    required this.age,\n  });" in text
        assert "'name': name," in text
        assert "'age': age," in text
        assert "name: ParsingUtils.parseString(map['name'])," in text
        assert "age: ParsingUtils.parseInt(map['age'])," in text
        assert "String toString() => 'Person(name: $name, age: $age)';" in text
        assert "other.name == name &&" in text
        assert "other.age == age;" in text
        assert "int get hashCode => name.hashCode ^ age.hashCode;" in text
        assert "String toJson() => json.encode(toMap());" in text
        assert "factory Person.fromJson(String source) => Person.fromMap(json.decode(source));" in text
        assert "  factory Person.init() => Person(\n    name: '',\n    age: 0,\n  );" in text
        assert text.rstrip().endswith("}")

    def test_second_run_is_a_no_op(self, person_source):
        _, first = generate(person_source)
        generator, second = generate(first)
        assert second == first
        assert not generator.classes[0].did_change
        assert not generator.imports.did_change

    def test_changed_member_is_replaced(self, person_source):
        _, first = generate(person_source)
        edited = first.replace(
            "String toString() => 'Person(name: $name, age: $age)';",
            "String toString() => 'Person';",
        )
        generator, fixed = generate(edited)
        assert [p.name for p in generator.classes[0].to_replace] == ["toString"]
        assert fixed == first

    def test_disabled_members_are_not_generated(self, person_source, only):
        _, text = generate(person_source, only("toString.enabled"))
        assert "toString()" in text
        assert "copyWith" not in text
        assert "Person({" not in text
        assert "import" not in text


class TestConstructor:
    def test_default_value_is_preserved(self, only):
        source = (
            "class Point {\n"
            "  final int x;\n"
            "  final int y;\n"
            "  final int z;\n"
            "\n"
            "  const Point({\n"
            "    this.x = 5,\n"
            "    required this.y,\n"
            "  });\n"
            "}\n"
        )
        generator, text = generate(source, only("constructor.enabled"))
        point = generator.classes[0]
        assert [p.name for p in point.to_replace] == ["constructor"]
        assert (
            "  const Point({\n"
            "    this.x = 5,\n"
            "    required this.y,\n"
            "    required this.z,\n"
            "  });"
        ) in text

    def test_positional_constructor_stays_positional(self, only):
        source = (
            "class Pair {\n"
            "  final int a;\n"
            "  final int b;\n"
            "\n"
            "  Pair(this.a);\n"
            "}\n"
        )
        _, text = generate(source, only("constructor.enabled"))
        assert "  Pair(\n    this.a,\n    this.b,\n  );" in text

    def test_initializer_list_is_kept(self, only):
        source = (
            "class Range {\n"
            "  final int start;\n"
            "  final int end;\n"
            "\n"
            "  Range({required this.start, required this.end}) : assert(start <= end);\n"
            "}\n"
        )
        generator, text = generate(source, only("constructor.enabled"))
        assert "}) : assert(start <= end);" in text
        assert generator.classes[0].constr_different

    def test_default_values_setting(self, only):
        source = "class Box {\n  final int size;\n  final List<String> tags;\n}\n"
        _, text = generate(source, only("constructor.enabled", **{"constructor.default_values": True}))
        assert "this.size = 0," in text
        assert "this.tags = const []," in text

    def test_widget_constructor(self):
        source = "class Badge extends StatelessWidget {\n  final String label;\n}\n"
        generator, text = generate(source)
        assert "  const Badge({\n    Key? key,\n    required this.label,\n  }) : super(key: key);" in text
        assert "copyWith" not in text
        assert "toString" not in text


class TestSerialization:
    def test_nullable_nested_passes_null_through(self, only):
        source = "class User {\n  final Address? address;\n}\n"
        _, text = generate(source, only("toMap.enabled", "fromMap.enabled"))
        assert "'address': address?.toMap()," in text
        assert "address: map['address'] != null ? Address.fromMap(map['address']) : null," in text

    def test_required_nested_falls_back_to_init(self, only):
        source = "class User {\n  final Address address;\n}\n"
        _, text = generate(source, only("fromMap.enabled"))
        assert "address: map['address'] == null ? Address.init() : Address.fromMap(map['address'])," in text

    def test_object_list(self, only):
        source = "class Cart {\n  final List<Item> items;\n}\n"
        _, text = generate(source, only("toMap.enabled", "fromMap.enabled"))
        assert "'items': items.map((x) => x.toMap()).toList()," in text
        assert "items: List<Item>.from(map['items']?.map((x) => Item.fromMap(x)) ?? const [])," in text

    def test_enum_and_date(self, only):
        source = (
            "class Task {\n"
            "  // enum\n"
            "  final Status status;\n"
            "  final DateTime due;\n"
            "}\n"
        )
        _, text = generate(source, only("toMap.enabled", "fromMap.enabled"))
        assert "'status': status.index," in text
        assert "status: Status.values[ParsingUtils.parseInt(map['status'])]," in text
        assert "'due': due.millisecondsSinceEpoch," in text
        assert "due: DateTime.fromMillisecondsSinceEpoch(ParsingUtils.parseInt(map['due']))," in text

    def test_parsing_utils_import_setting(self, only, person_source):
        settings = only("fromMap.enabled", **{"fromMap.parsing_utils_import": "package:app/parsing_utils.dart"})
        _, text = generate(person_source, settings)
        assert text.startswith("import 'package:app/parsing_utils.dart';")

    def test_snake_case_keys(self, only):
        source = "class A {\n  final String firstName;\n}\n"
        settings = only("toMap.enabled", **{"json.key_format": "snake_case"})
        _, text = generate(source, settings)
        assert "'first_name': firstName," in text


class TestEquality:
    LISTS = "class Bag {\n  final List<int> ids;\n  final String name;\n}\n"

    def test_collection_helper_without_flutter(self, only):
        _, text = generate(self.LISTS, only("equality.enabled"))
        assert "import 'package:collection/collection.dart';" in text
        assert "final listEquals = const DeepCollectionEquality().equals;" in text
        assert "listEquals(other.ids, ids) &&" in text

    def test_foundation_helper_with_flutter(self, only):
        _, text = generate(self.LISTS, only("equality.enabled"), ProjectInfo(name="app", is_flutter=True))
        assert "import 'package:flutter/foundation.dart';" in text
        assert "DeepCollectionEquality" not in text
        assert "listEquals(other.ids, ids) &&" in text

    def test_helper_selection(self):
        lst = DartField("List<int>", "a")
        mp = DartField("Map<String, int>", "b")
        st = DartField("Set<int>", "c")
        assert collection_equality_fn([lst]) == "listEquals"
        assert collection_equality_fn([mp]) == "mapEquals"
        assert collection_equality_fn([st]) == "setEquals"
        assert collection_equality_fn([lst, mp]) == "collectionEquals"
        assert collection_equality_fn([DartField("int", "x")]) is None

    def test_jenkins_hash(self, only, person_source):
        settings = only("hashCode.enabled", **{"hashCode.use_jenkins": True})
        _, text = generate(person_source, settings)
        assert "import 'dart:ui';" in text
        assert "return hashList([\n      name,\n      age,\n    ]);" in text

    def test_equatable(self, only):
        source = "class Item {\n  final String id;\n  final int? count;\n}\n"
        _, text = generate(source, only(useEquatable=True))
        assert "import 'package:equatable/equatable.dart';" in text
        assert "class Item extends Equatable {" in text
        assert "List<Object?> get props => [id, count];" in text
        assert "operator ==" not in text

    def test_equatable_mixin_when_superclass_exists(self, only):
        source = "class Dog extends Animal {\n  final String breed;\n}\n"
        _, text = generate(source, only(useEquatable=True))
        assert "class Dog extends Animal with EquatableMixin {" in text


ORDER_FILE = """class Order {
  final int id;
  final String? note;
  final double total;
  final bool paid;
  final DateTime createdAt;
  final List<String> tags;
  final Set<int> codes;
  final Map<String, dynamic> meta;
  final List<Item> items;
  final Item? featured;
  // enum
  final Status status;
  final num weight;
}

class Item {
  final String name;
  final int quantity;
  final double price;
  final bool gift;
  final String? sku;
}
"""


class TestRegenerationIsStable:
    @pytest.mark.parametrize("values", [
        {},
        {"useEquatable": True},
        {
            "hashCode.use_jenkins": True,
            "copyWith.usesValueGetter": True,
            "constructor.default_values": True,
        },
    ])
    def test_second_run_plans_no_edits(self, values):
        settings = Settings.from_dict(values)
        _, first = generate(ORDER_FILE, settings)
        assert first != ORDER_FILE

        generator, second = generate(first, settings)
        assert plan_edits(generator.classes, generator.imports) == []
        assert second == first
        assert [c.name for c in generator.classes] == ["Order", "Item"]


class TestValidity:
    def test_duplicate_property_names_skip_class(self):
        source = "class Dup {\n  final int a;\n  final int a;\n}\n"
        generator, text = generate(source)
        assert text == source
        assert generator.classes[0].issue.endswith("Class doesn't have unique property names!")

    def test_abstract_class_gets_no_factories(self):
        source = "abstract class Shape {\n  final double area;\n}\n"
        generator, _ = generate(source)
        clazz = generator.classes[0]
        assert "copyWith" not in clazz.to_insert
        assert "fromMap" not in clazz.to_insert
        assert "toString" in clazz.to_insert


class TestHelpers:
    def test_zero_values(self):
        assert zero_value(DartField("String", "a")) == "''"
        assert zero_value(DartField("Set<int>", "a")) == "const {}"
        assert zero_value(DartField("Status", "a", is_enum=True)) == "Status.values.first"

    def test_class_replacement_without_changes(self, person_source):
        generator = DataClassGenerator(person_source, Settings.from_dict({
            k: False for k in ("constructor.enabled", "init.enabled", "copyWith.enabled",
                               "toMap.enabled", "fromMap.enabled", "toJson.enabled",
                               "fromJson.enabled", "toString.enabled", "equality.enabled",
                               "hashCode.enabled")
        }))
        assert class_replacement(generator.classes[0]) == person_source.rstrip("\n")

    def test_parsing_utils_source(self):
        source = parsing_utils_source()
        assert source.startswith("class ParsingUtils {")
        for fn in ("parseInt", "parseDouble", "parseString", "parseBool"):
            assert f" {fn}(dynamic value)" in source
