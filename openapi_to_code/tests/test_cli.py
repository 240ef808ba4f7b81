import json
from pathlib import Path

from click.testing import CliRunner

from openapi_to_code.openapi_to_code import openapi_to_code

PETSTORE = Path(__file__).parent / "test_data" / "petstore.yaml"


def test_typescript_output(tmp_path):
    output = tmp_path / "types.ts"
    result = CliRunner().invoke(openapi_to_code, [str(PETSTORE), str(output)])
    assert result.exit_code == 0, result.output
    code = output.read_text()
    assert code.startswith("// Generated by openapi_to_code v")
    # The input exists and is shortened to its name; the output did not exist yet
    header = code.splitlines()[0]
    assert ": openapi_to_code petstore.yaml " in header
    assert header.endswith("types.ts")
    assert "export type Pet = {" in code


def test_python_output(tmp_path):
    output = tmp_path / "models.py"
    result = CliRunner().invoke(openapi_to_code, ["--language", "python", str(PETSTORE), str(output)])
    assert result.exit_code == 0, result.output
    code = output.read_text()
    assert "--language python" in code.splitlines()[0]
    assert "class Pet(TypedDict):" in code


def test_config_file(tmp_path):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"add_generation_comment": False, "export_declarations": False}))
    output = tmp_path / "types.ts"
    result = CliRunner().invoke(openapi_to_code, ["--config", str(config), str(PETSTORE), str(output)])
    assert result.exit_code == 0, result.output
    code = output.read_text()
    assert "Generated by" not in code
    assert "\ntype Pet = {" in code
    assert "export type" not in code


def test_operations_file(tmp_path):
    output = tmp_path / "types.ts"
    operations = tmp_path / "operations.json"
    result = CliRunner().invoke(openapi_to_code, ["--operations", str(operations), str(PETSTORE), str(output)])
    assert result.exit_code == 0, result.output
    records = json.loads(operations.read_text())
    assert [r["name"] for r in records] == ["listPets", "createPet", "getPets"]
    assert records[0]["parameters"]["query"][0]["name"] == "limit"
    assert records[1]["request_body"]["schema_name"] == "NewPet"


def test_json_document_and_warnings(tmp_path):
    document = tmp_path / "api.json"
    document.write_text(
        json.dumps(
            {
                "openapi": "3.1.0",
                "components": {"schemas": {"Id": {"anyOf": [{"type": "string"}, {"type": "integer"}]}}},
            }
        )
    )
    output = tmp_path / "types.ts"
    result = CliRunner().invoke(openapi_to_code, [str(document), str(output)])
    assert result.exit_code == 0, result.output
    assert "warning: #/components/schemas/Id: 'anyOf'" in result.output
    assert "export type Id = string | number;" in output.read_text()


def test_dialect_override(tmp_path):
    document = tmp_path / "api.json"
    document.write_text(json.dumps({"openapi": "3.0.3", "components": {"schemas": {"Id": {"type": ["string", "null"]}}}}))
    output = tmp_path / "types.ts"
    result = CliRunner().invoke(openapi_to_code, ["--dialect", "3.1", str(document), str(output)])
    assert result.exit_code == 0, result.output
    assert "warning:" not in result.output

    result = CliRunner().invoke(openapi_to_code, [str(document), str(output)])
    assert "warning:" in result.output


def test_conversion_error(tmp_path):
    document = tmp_path / "api.json"
    document.write_text(json.dumps({"components": {"schemas": {"A": {"$ref": "#/definitions/B"}}}}))
    output = tmp_path / "types.ts"
    result = CliRunner().invoke(openapi_to_code, [str(document), str(output)])
    assert result.exit_code == 1
    assert "Unsupported $ref format" in result.output
    assert not output.exists()


def test_invalid_dialect_in_config_file(tmp_path):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"dialect_version": "2.0"}))
    output = tmp_path / "types.ts"
    result = CliRunner().invoke(openapi_to_code, ["--config", str(config), str(PETSTORE), str(output)])
    assert result.exit_code == 1
    assert "Invalid configuration: Unsupported OpenAPI version: '2.0'" in result.output
    assert not isinstance(result.exception, ValueError)
    assert not output.exists()
