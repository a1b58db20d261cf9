"""Tests for discovery.schema."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from gologin_mcp_server.discovery.schema import (
    AnyNode,
    ArrayNode,
    EnumNode,
    ObjectNode,
    PrimitiveNode,
    SchemaConverter,
    to_json_schema,
    to_validation_schema,
)


@pytest.fixture
def converter(openapi_spec):
    return SchemaConverter(openapi_spec)


class TestResolveReference:
    def test_existing_schema(self, converter):
        node = converter.resolve_reference("#/components/schemas/ProfileBase")
        assert isinstance(node, ObjectNode)
        assert set(node.properties) == {"name", "os", "notes"}
        assert node.required == ("name", "os")

    def test_missing_path_returns_generic_object(self, converter):
        node = converter.resolve_reference("#/components/schemas/DoesNotExist")
        assert node == ObjectNode()

    def test_non_root_pointer_returns_generic_object(self, converter):
        node = converter.resolve_reference("other.json#/components/schemas/ProfileBase")
        assert node == ObjectNode()

    def test_escaped_segments(self):
        converter = SchemaConverter(
            {"paths": {"/a/b": {"x": {"type": "integer"}}}}
        )
        node = converter.resolve_reference("#/paths/~1a~1b/x")
        assert node == PrimitiveNode(kind="integer")

    def test_cycle_terminates_with_generic_object(self, converter):
        node = converter.to_schema_node({"$ref": "#/components/schemas/Folder"})
        assert isinstance(node, ObjectNode)
        assert node.properties["parent"] == ObjectNode()
        assert node.properties["name"] == PrimitiveNode(kind="string")

    def test_lookup_returns_raw(self, converter):
        raw = converter.lookup("#/components/parameters/WorkspaceKey")
        assert raw["name"] == "X-Key"


class TestToSchemaNode:
    def test_plain_object_copies_attributes(self):
        node = SchemaConverter({}).to_schema_node(
            {
                "type": "object",
                "description": "Proxy",
                "properties": {
                    "port": {"type": "integer", "minimum": 1, "maximum": 65535},
                    "host": {"type": "string", "pattern": "^[a-z.]+$", "format": "hostname"},
                },
            }
        )
        assert isinstance(node, ObjectNode)
        assert node.description == "Proxy"
        assert node.required == ()
        assert node.properties["port"] == PrimitiveNode(
            kind="integer", minimum=1, maximum=65535
        )
        assert node.properties["host"].pattern == "^[a-z.]+$"
        assert node.properties["host"].format == "hostname"

    def test_enum_node(self):
        node = SchemaConverter({}).to_schema_node(
            {"type": "string", "enum": ["lin", "mac"]}
        )
        assert node == EnumNode(values=("lin", "mac"), kind="string")

    def test_array_items_converted(self, converter):
        node = converter.to_schema_node(
            {"type": "array", "items": {"$ref": "#/components/schemas/Navigator"}}
        )
        assert isinstance(node, ArrayNode)
        assert isinstance(node.items, ObjectNode)
        assert "userAgent" in node.items.properties

    def test_type_inferred_from_properties(self):
        node = SchemaConverter({}).to_schema_node({"properties": {"a": {}}})
        assert isinstance(node, ObjectNode)
        assert node.properties["a"] == AnyNode()

    def test_untyped_schema_is_any(self):
        node = SchemaConverter({}).to_schema_node(
            {"anyOf": [{"type": "string"}, {"type": "integer"}], "description": "Id"}
        )
        assert node == AnyNode(description="Id")

    def test_nullable_type_list(self):
        node = SchemaConverter({}).to_schema_node({"type": ["null", "number"]})
        assert node == PrimitiveNode(kind="number")


class TestAllOfMerge:
    def test_disjoint_properties_are_unioned(self):
        node = SchemaConverter({}).to_schema_node(
            {
                "allOf": [
                    {"type": "object", "properties": {"a": {"type": "string"}}},
                    {"type": "object", "properties": {"b": {"type": "integer"}}},
                ]
            }
        )
        assert isinstance(node, ObjectNode)
        assert set(node.properties) == {"a", "b"}

    def test_scalar_from_single_branch_is_retained(self):
        node = SchemaConverter({}).to_schema_node(
            {"allOf": [{"type": "string"}, {"pattern": "^[0-9a-f]{24}$"}]}
        )
        assert node == PrimitiveNode(kind="string", pattern="^[0-9a-f]{24}$")

    def test_first_scalar_wins(self):
        node = SchemaConverter({}).to_schema_node(
            {
                "allOf": [
                    {"type": "string", "pattern": "^a", "format": "first"},
                    {"type": "string", "pattern": "^b", "format": "second"},
                ]
            }
        )
        assert node.pattern == "^a"
        assert node.format == "first"

    def test_required_union_without_duplicates(self):
        node = SchemaConverter({}).to_schema_node(
            {
                "allOf": [
                    {"type": "object", "properties": {"a": {}}, "required": ["a"]},
                    {"type": "object", "properties": {"b": {}}, "required": ["b", "a"]},
                ]
            }
        )
        assert node.required == ("a", "b")

    def test_own_description_takes_precedence(self):
        node = SchemaConverter({}).to_schema_node(
            {
                "description": "Combined",
                "allOf": [
                    {"type": "object", "description": "First", "properties": {}},
                ],
            }
        )
        assert isinstance(node, ObjectNode)
        assert node.description == "Combined"

    def test_type_and_description_from_first_supplier(self):
        node = SchemaConverter({}).to_schema_node(
            {"allOf": [{"description": "Any first"}, {"type": "integer"}]}
        )
        assert node == PrimitiveNode(kind="integer", description="Any first")

    def test_enum_from_first_branch(self):
        node = SchemaConverter({}).to_schema_node(
            {"allOf": [{"type": "string", "enum": ["a"]}, {"enum": ["b"]}]}
        )
        assert node == EnumNode(values=("a",), kind="string")

    def test_overlapping_object_properties_merge(self):
        node = SchemaConverter({}).to_schema_node(
            {
                "allOf": [
                    {"properties": {"proxy": {"properties": {"host": {"type": "string"}}}}},
                    {"properties": {"proxy": {"properties": {"port": {"type": "integer"}}}}},
                ]
            }
        )
        proxy = node.properties["proxy"]
        assert isinstance(proxy, ObjectNode)
        assert set(proxy.properties) == {"host", "port"}

    def test_overlapping_leaf_keeps_first(self):
        node = SchemaConverter({}).to_schema_node(
            {
                "allOf": [
                    {"properties": {"id": {"type": "string"}}},
                    {"properties": {"id": {"type": "integer"}}},
                ]
            }
        )
        assert node.properties["id"] == PrimitiveNode(kind="string")

    def test_ref_branches(self, converter):
        node = converter.to_schema_node({"$ref": "#/components/schemas/BrowserCreate"})
        assert isinstance(node, ObjectNode)
        assert set(node.properties) == {"name", "os", "notes", "navigator"}
        assert node.required == ("name", "os")
        assert node.description == "Browser profile"


class TestToJsonSchema:
    def test_object_always_has_required(self):
        schema = to_json_schema(ObjectNode(properties={"a": AnyNode()}))
        assert schema == {
            "type": "object",
            "properties": {"a": {}},
            "required": [],
        }

    def test_enum_with_type_and_description(self):
        schema = to_json_schema(
            EnumNode(values=("lin", "mac"), kind="string", description="OS")
        )
        assert schema == {"enum": ["lin", "mac"], "type": "string", "description": "OS"}

    def test_array_bounds(self):
        schema = to_json_schema(
            ArrayNode(items=PrimitiveNode(kind="integer", minimum=0, maximum=10))
        )
        assert schema == {
            "type": "array",
            "items": {"type": "integer", "minimum": 0, "maximum": 10},
        }


class TestToValidationSchema:
    def test_enum_takes_precedence_over_type(self):
        adapter = to_validation_schema(EnumNode(values=(1, 2), kind="integer"))
        assert adapter.validate_python(2) == 2
        with pytest.raises(PydanticValidationError):
            adapter.validate_python(3)

    def test_unhashable_enum_values(self):
        adapter = to_validation_schema(EnumNode(values=([1], [2])))
        assert adapter.validate_python([1]) == [1]
        with pytest.raises(PydanticValidationError):
            adapter.validate_python([3])

    def test_object_optional_and_required_keys(self):
        node = ObjectNode(
            properties={
                "name": PrimitiveNode(kind="string"),
                "max-sessions": PrimitiveNode(kind="integer"),
            },
            required=("name",),
        )
        adapter = to_validation_schema(node)
        adapter.validate_python({"name": "x"})
        adapter.validate_python({"name": "x", "max-sessions": 3, "extra": True})
        with pytest.raises(PydanticValidationError):
            adapter.validate_python({})
        with pytest.raises(PydanticValidationError):
            adapter.validate_python({"name": "x", "max-sessions": "many"})

    def test_integer_requires_whole_number(self):
        adapter = to_validation_schema(PrimitiveNode(kind="integer"))
        assert adapter.validate_python(4) == 4
        with pytest.raises(PydanticValidationError):
            adapter.validate_python(1.5)

    def test_number_accepts_int(self):
        adapter = to_validation_schema(PrimitiveNode(kind="number"))
        assert adapter.validate_python(3) == 3.0

    @pytest.mark.parametrize("kind", ["integer", "number"])
    def test_boolean_is_not_numeric(self, kind):
        adapter = to_validation_schema(
            ObjectNode(properties={"n": PrimitiveNode(kind=kind)}, required=("n",))
        )
        with pytest.raises(PydanticValidationError):
            adapter.validate_python({"n": True})

    def test_array_items(self):
        adapter = to_validation_schema(ArrayNode(items=PrimitiveNode(kind="boolean")))
        assert adapter.validate_python([True, False]) == [True, False]
        with pytest.raises(PydanticValidationError):
            adapter.validate_python([{"a": 1}])

    def test_array_without_items_accepts_anything(self):
        adapter = to_validation_schema(ArrayNode())
        assert adapter.validate_python([1, "a", None]) == [1, "a", None]

    def test_any_node(self):
        adapter = to_validation_schema(AnyNode())
        assert adapter.validate_python({"x": [1]}) == {"x": [1]}

    def test_description_is_metadata(self):
        adapter = to_validation_schema(
            PrimitiveNode(kind="string", description="Profile name")
        )
        assert adapter.json_schema()["description"] == "Profile name"
        assert adapter.validate_python("") == ""
