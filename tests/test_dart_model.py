"""
Tests for dartforge/dart_model.py
"""

from dartforge.dart_model import ClassPart, DartClass, DartField


class TestDartField:
    def test_nullable_list(self):
        f = DartField(raw_type="List<String>?", name="tags")
        assert f.is_nullable
        assert f.type == "List<String>"
        assert f.is_list and f.is_collection
        assert f.collection_type.type == "String"
        assert f.is_primitive

    def test_map_is_primitive(self):
        f = DartField(raw_type="Map<String, dynamic>", name="data")
        assert f.is_map
        assert f.is_primitive
        assert f.collection_type is f

    def test_bare_list_element_is_dynamic(self):
        assert DartField(raw_type="List", name="x").collection_type.type == "dynamic"

    def test_nested_type_defaults_to_init(self):
        f = DartField(raw_type="Address", name="address")
        assert not f.is_primitive
        assert f.def_value == "Address.init()"

    def test_default_values(self):
        assert DartField(raw_type="int", name="a").def_value == "0"
        assert DartField(raw_type="double", name="a").def_value == "0.0"
        assert DartField(raw_type="Set<int>", name="a").def_value == "const {}"
        assert DartField(raw_type="List<int>", name="a").def_value == "const []"

    def test_create_escapes_name_and_formats_key(self):
        f = DartField.create("String", "firstName", key_format="snake_case")
        assert f.key == "first_name"
        j = DartField.create("String", "first-name", from_json=True)
        assert j.name == "firstName"
        assert j.key == "first-name"


class TestDartClass:
    def test_generic_type_drops_bounds(self):
        assert DartClass(name="A", full_generic_type="<T extends num>").type == "A<T>"
        assert DartClass(name="A", full_generic_type="<T extends num, K>").generic_type == "<T, K>"

    def test_validity_messages(self):
        empty = DartClass(name="Empty", starts_at_line=1, ends_at_line=2)
        assert not empty.is_valid
        assert empty.issue == "Empty couldn't be converted to a data class: Class must have at least one property!"

        dup = DartClass(
            name="Dup", starts_at_line=1, ends_at_line=4,
            properties=[DartField("int", "a"), DartField("int", "a")],
        )
        assert dup.issue == "Dup couldn't be converted to a data class: Class doesn't have unique property names!"

        open_class = DartClass(name="Open", starts_at_line=1, properties=[DartField("int", "a")])
        assert open_class.issue == "Open couldn't be converted to a data class: Class has no ending!"

    def test_widget_and_equatable_kinds(self):
        assert DartClass(name="W", superclass="StatelessWidget").is_widget
        assert DartClass(name="S", superclass="State<W>").is_state
        assert DartClass(name="E", superclass="Equatable").uses_equatable
        assert DartClass(name="M", superclass="Base", mixins=["EquatableMixin"]).uses_equatable

    def test_did_change(self):
        clazz = DartClass(name="A")
        assert not clazz.did_change
        clazz.to_insert = "\n  x\n"
        assert clazz.did_change

    def test_part_at_line(self):
        to_string = ClassPart("toString", starts_at=6, ends_at=7, current="x", replacement="y")
        clazz = DartClass(name="A", to_replace=[to_string])
        assert clazz.part_at_line(7) is to_string
        assert clazz.part_at_line(5) is None
