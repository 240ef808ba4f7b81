import pytest

from openapi_to_code.pipeline.analyzer.converter import (
    SchemaConverter,
    SchemaShape,
    classify,
    convert_document,
    convert_registry,
    extract_constraints,
    extract_metadata,
)
from openapi_to_code.pipeline.analyzer.ir_nodes import (
    IRDiscriminator,
    IRKind,
    IRMetadata,
    IRProperty,
    PrimitiveKind,
    array,
    intersection,
    literal,
    map_of,
    object_of,
    primitive,
    reference,
    union,
)
from openapi_to_code.pipeline.config import CodeGeneratorConfig
from openapi_to_code.pipeline.errors import (
    CircularTypeReference,
    DuplicateSchemaName,
    InvalidDocument,
    UnresolvedReference,
    UnsupportedReferenceFormat,
)


def convert_one(schema, **kwargs):
    """Convert a single schema registered as 'T' and return its IR type."""
    result = convert_registry({"T": schema}, **kwargs)
    return result.schema.get("T").type


def warning_messages(result):
    return [w.message for w in result.warnings]


class TestClassify:
    @pytest.mark.parametrize(
        "schema, shape",
        [
            ({"$ref": "#/components/schemas/A", "type": "object"}, SchemaShape.REFERENCE),
            ({"const": 1, "enum": [1, 2]}, SchemaShape.CONST),
            ({"enum": ["a"], "type": "string"}, SchemaShape.ENUM),
            ({"enum": [], "type": "string"}, SchemaShape.TYPED),
            ({"oneOf": [], "anyOf": []}, SchemaShape.ONE_OF),
            ({"anyOf": [], "allOf": []}, SchemaShape.ANY_OF),
            ({"allOf": [], "type": "object"}, SchemaShape.ALL_OF),
            ({"type": "string"}, SchemaShape.TYPED),
            ({"properties": {}}, SchemaShape.IMPLIED_OBJECT),
            ({"items": {}}, SchemaShape.IMPLIED_ARRAY),
            ({"description": "anything"}, SchemaShape.UNTYPED),
        ],
    )
    def test_first_keyword_wins(self, schema, shape):
        assert classify(schema) is shape


class TestPrimitivesAndObjects:
    def test_object_with_required_properties(self):
        node = convert_one(
            {
                "type": "object",
                "properties": {"id": {"type": "number"}, "name": {"type": "string"}},
                "required": ["id", "name"],
            }
        )
        assert node == object_of(
            [
                IRProperty("id", primitive("number"), required=True),
                IRProperty("name", primitive("string"), required=True),
            ]
        )

    def test_required_names_outside_properties_are_ignored(self):
        node = convert_one({"type": "object", "properties": {"a": {"type": "string"}, "b": {"type": "string"}}, "required": ["a", "zz"]})
        assert node.required_names == ["a"]

    def test_format_and_metadata(self):
        node = convert_one(
            {
                "type": "string",
                "format": "email",
                "description": "Contact address",
                "deprecated": True,
                "default": "a@b.c",
                "example": "x@y.z",
                "minLength": 3,
                "x-internal": True,
            }
        )
        assert node.primitive_kind is PrimitiveKind.STRING
        assert node.format == "email"
        assert node.metadata.description == "Contact address"
        assert node.metadata.deprecated is True
        assert node.metadata.has_default and node.metadata.default == "a@b.c"
        assert node.metadata.examples == ("x@y.z",)
        assert node.metadata.extensions == {"x-internal": True}
        assert node.constraints.min_length == 3

    def test_untyped_schema_is_any(self):
        assert convert_one({}) == primitive("any")

    def test_boolean_schemas(self):
        assert convert_one(True) == primitive("any")
        assert convert_one(False) == primitive("void")

    def test_non_object_schema_is_rejected(self):
        with pytest.raises(InvalidDocument):
            convert_one(5)

    def test_implied_object(self):
        node = convert_one({"properties": {"a": {"type": "string"}}})
        assert node == object_of([IRProperty("a", primitive("string"))])

    def test_array_items(self):
        assert convert_one({"type": "array", "items": {"type": "string"}}) == array(primitive("string"))
        assert convert_one({"type": "array"}) == array(primitive("any"))

    def test_schema_additional_properties_without_properties_is_a_map(self):
        node = convert_one({"type": "object", "additionalProperties": {"type": "integer"}})
        assert node == map_of(primitive("integer"))

    def test_additional_properties_true_stays_an_object(self):
        node = convert_one({"type": "object", "additionalProperties": True})
        assert node == object_of([], True)

    def test_empty_object(self):
        assert convert_one({"type": "object"}) == object_of()

    def test_property_metadata_and_readonly(self):
        node = convert_one({"type": "object", "properties": {"id": {"type": "integer", "readOnly": True, "description": "Id"}}})
        prop = node.properties[0]
        assert prop.readonly is True
        assert prop.metadata.description == "Id"

    def test_unknown_type_is_any_with_warning(self):
        result = convert_registry({"T": {"type": "file"}})
        assert result.schema.get("T").type == primitive("any")
        assert any("unknown type" in m for m in warning_messages(result))

    def test_constraints_extraction(self):
        constraints = extract_constraints({"minimum": 1, "exclusiveMaximum": True, "enum": ["a"], "uniqueItems": True})
        assert constraints.minimum == 1
        assert constraints.exclusive_maximum is True
        assert constraints.enum == ("a",)
        assert constraints.unique_items is True

    def test_metadata_examples(self):
        metadata = extract_metadata({"example": 1, "examples": [2, 3], "title": "T"})
        assert metadata.examples == (1, 2, 3)
        assert metadata.title == "T"
        assert extract_metadata({}) == IRMetadata()


class TestNullability:
    def test_nullable_string(self):
        node = convert_one({"type": "string", "nullable": True})
        assert node.kind is IRKind.UNION
        assert set(node.members) == {primitive("string"), primitive("null")}

    def test_type_array(self):
        node = convert_one({"type": ["string", "null"]})
        assert node == union([primitive("string"), primitive("null")])

    def test_single_element_type_array_is_bare(self):
        assert convert_one({"type": ["integer"]}) == primitive("integer")

    def test_metadata_on_union_constraints_on_member(self):
        node = convert_one({"type": "string", "nullable": True, "description": "d", "maxLength": 4})
        assert node.metadata.description == "d"
        assert node.members[0].constraints.max_length == 4

    def test_nullable_in_31_warns_but_is_honoured(self):
        result = convert_registry({"T": {"type": "string", "nullable": True}}, dialect_version="3.1")
        assert result.schema.get("T").type == union([primitive("string"), primitive("null")])
        assert len(result.warnings) == 1

    def test_type_array_in_30_warns_but_is_honoured(self):
        result = convert_registry({"T": {"type": ["string", "null"]}}, dialect_version="3.0")
        assert result.schema.get("T").type == union([primitive("string"), primitive("null")])
        assert len(result.warnings) == 1

    def test_native_forms_do_not_warn(self):
        assert convert_registry({"T": {"type": "string", "nullable": True}}, dialect_version="3.0").warnings == ()
        assert convert_registry({"T": {"type": ["string", "null"]}}, dialect_version="3.1").warnings == ()

    def test_nullable_next_to_ref_warns(self):
        result = convert_registry(
            {"A": {"type": "string"}, "T": {"$ref": "#/components/schemas/A", "nullable": True}},
        )
        assert result.schema.get("T").type == reference("A")
        assert any("nullable" in m for m in warning_messages(result))

    def test_nullable_enum_listing_null_does_not_warn(self):
        result = convert_registry({"T": {"type": "string", "nullable": True, "enum": ["a", None]}})
        assert result.warnings == ()
        assert [m.value for m in result.schema.get("T").type.members] == ["a", None]


class TestEnumsAndConst:
    def test_single_value_enum_is_a_literal(self):
        node = convert_one({"type": "string", "enum": ["active"]})
        assert node.kind is IRKind.LITERAL
        assert node.value == "active"

    def test_enum_is_a_union_of_literals(self):
        node = convert_one({"enum": ["a", 1, True]})
        assert node.kind is IRKind.UNION
        assert [m.value for m in node.members] == ["a", 1, True]
        assert node.constraints.enum == ("a", 1, True)

    def test_const(self):
        assert convert_one({"const": 5}) == literal(5)

    def test_non_scalar_enum_value(self):
        result = convert_registry({"T": {"enum": [{"a": 1}, "b"]}})
        node = result.schema.get("T").type
        assert node.members[0] == primitive("any")
        assert len(result.warnings) == 1


class TestReferences:
    def test_reference(self):
        result = convert_registry({"A": {"type": "string"}, "B": {"$ref": "#/components/schemas/A"}})
        assert result.schema.get("B").type == reference("A")

    def test_reference_keeps_sibling_description(self):
        node = convert_one({"$ref": "#/components/schemas/A", "description": "see A"})
        assert node.name == "A"
        assert node.metadata.description == "see A"

    def test_malformed_reference(self):
        with pytest.raises(UnsupportedReferenceFormat):
            convert_one({"$ref": "#/definitions/A"})

    def test_dangling_reference_is_allowed_by_default(self):
        assert convert_one({"$ref": "#/components/schemas/Missing"}) == reference("Missing")

    def test_strict_references(self):
        with pytest.raises(UnresolvedReference):
            convert_registry({"T": {"$ref": "#/components/schemas/Missing"}}, config=CodeGeneratorConfig(strict_references=True))


class TestCombinators:
    def test_one_of_with_discriminator(self):
        schemas = {
            "Cat": {"type": "object"},
            "Dog": {"type": "object"},
            "Pet": {
                "oneOf": [{"$ref": "#/components/schemas/Cat"}, {"$ref": "#/components/schemas/Dog"}],
                "discriminator": {"propertyName": "petType", "mapping": {"cat": "#/components/schemas/Cat", "dog": "Dog"}},
            },
        }
        node = convert_registry(schemas).schema.get("Pet").type
        assert node.members == (reference("Cat"), reference("Dog"))
        assert node.discriminator == IRDiscriminator("petType", {"cat": "Cat", "dog": "Dog"})

    def test_discriminator_dropped_for_scalar_members(self):
        result = convert_registry({"T": {"oneOf": [{"type": "string"}, {"type": "object"}], "discriminator": {"propertyName": "kind"}}})
        assert result.schema.get("T").type.discriminator is None
        assert any("discriminator" in m for m in warning_messages(result))

    def test_any_of_is_approximated_with_warning(self):
        result = convert_registry({"T": {"anyOf": [{"type": "string"}, {"type": "number"}]}})
        assert result.schema.get("T").type == union([primitive("string"), primitive("number")])
        assert any("anyOf" in m for m in warning_messages(result))

    def test_empty_one_of_is_void(self):
        result = convert_registry({"T": {"oneOf": []}})
        assert result.schema.get("T").type == primitive("void")
        assert len(result.warnings) == 1

    def test_all_of_is_an_intersection(self):
        result = convert_registry(
            {
                "Base": {"type": "object"},
                "T": {"allOf": [{"$ref": "#/components/schemas/Base"}, {"type": "object", "properties": {"x": {"type": "string"}}}]},
            }
        )
        assert result.schema.get("T").type == intersection([reference("Base"), object_of([IRProperty("x", primitive("string"))])])


class TestCyclesAndRegistry:
    def test_mutual_aliases_are_rejected(self):
        with pytest.raises(CircularTypeReference):
            convert_registry({"A": {"$ref": "#/components/schemas/B"}, "B": {"$ref": "#/components/schemas/A"}})

    def test_self_intersection_is_rejected(self):
        with pytest.raises(CircularTypeReference) as exc_info:
            convert_registry({"A": {"allOf": [{"$ref": "#/components/schemas/A"}, {"type": "object"}]}})
        assert exc_info.value.cycle == ["A", "A"]

    def test_recursion_through_properties_is_allowed(self):
        schema = {"type": "object", "properties": {"children": {"type": "array", "items": {"$ref": "#/components/schemas/Node"}}}}
        result = convert_registry({"Node": schema})
        assert result.schema.names() == ["Node"]

    def test_self_containing_schema_object(self):
        schema = {"type": "object", "properties": {}}
        schema["properties"]["self"] = schema
        with pytest.raises(CircularTypeReference):
            convert_one(schema)

    def test_depth_limit(self):
        schema = {"type": "string"}
        for _ in range(10):
            schema = {"type": "array", "items": schema}
        with pytest.raises(CircularTypeReference):
            convert_one(schema, config=CodeGeneratorConfig(max_depth=5))
        assert convert_one(schema, config=CodeGeneratorConfig(max_depth=20)).kind is IRKind.ARRAY

    def test_duplicate_names(self):
        with pytest.raises(DuplicateSchemaName):
            convert_registry([("A", {"type": "string"}), ("A", {"type": "number"})])

    def test_registry_order_is_kept(self):
        result = convert_registry([("Z", {}), ("A", {}), ("M", {})])
        assert result.schema.names() == ["Z", "A", "M"]

    def test_conversion_is_deterministic(self):
        schemas = {"T": {"type": "object", "properties": {"a": {"type": "string"}, "b": {"type": "array", "items": {"type": "integer"}}}}}
        assert convert_registry(schemas) == convert_registry(schemas)


class TestConvertDocument:
    def test_dialect_from_document(self):
        result = convert_document({"openapi": "3.1.0", "components": {"schemas": {"A": {"type": ["string", "null"]}}}})
        assert result.schema.version == "3.1"
        assert result.warnings == ()

    def test_other_versions_are_30(self):
        assert convert_document({"openapi": "3.0.3"}).schema.version == "3.0"

    def test_config_dialect_wins(self):
        result = convert_document({"openapi": "3.0.3"}, CodeGeneratorConfig(dialect_version="3.1"))
        assert result.schema.version == "3.1"

    def test_document_must_be_an_object(self):
        with pytest.raises(InvalidDocument):
            convert_document([])

    def test_methods(self):
        document = {
            "openapi": "3.0.3",
            "paths": {
                "/users/{id}": {
                    "get": {
                        "operationId": "getUser",
                        "parameters": [{"name": "id", "in": "path", "schema": {"type": "string"}}],
                        "responses": {"200": {"description": "ok", "content": {"application/json": {"schema": {"$ref": "#/components/schemas/User"}}}}},
                    }
                }
            },
            "components": {"schemas": {"User": {"type": "object"}}},
        }
        result = SchemaConverter(CodeGeneratorConfig(include_methods=True)).convert_document(document)
        method = result.schema.methods[0]
        assert method.name == "getUser"
        assert method.http_method == "GET"
        assert method.input == primitive("void")
        assert method.output == reference("User")
        assert method.path_params == object_of([IRProperty("id", primitive("string"), required=True)])
        assert method.query_params is None

    def test_methods_are_off_by_default(self):
        document = {"paths": {"/a": {"get": {"responses": {}}}}}
        assert convert_document(document).schema.methods == ()
