"""
Functional tests for the pipeline.

Each test case in test_data/functional/*_tests.json registers a set of
schemas, generates code for one or both target languages and checks the
output for expected and unexpected patterns.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from openapi_to_code.pipeline import CodeGeneratorConfig, PipelineGenerator


def load_all_test_cases():
    """Load all test cases from all JSON files in test_data/functional directory."""
    functional_dir = Path(__file__).parent / "test_data" / "functional"
    test_cases = []

    for json_file in sorted(functional_dir.glob("*_tests.json")):
        with open(json_file) as f:
            data = json.load(f)

        for test_case in data:
            test_case["_source_file"] = json_file.name
            test_cases.append(test_case)

    return test_cases


def _generate_code(test_case, language):
    """Helper to generate code for the schemas of a test case."""
    config = CodeGeneratorConfig.from_dict({"add_generation_comment": False, **test_case.get("config", {})})
    document = {
        "openapi": test_case.get("openapi", "3.0.3"),
        "components": {"schemas": test_case["schemas"]},
    }
    return PipelineGenerator(document, config, language).generate()


@pytest.mark.parametrize("test_case", load_all_test_cases(), ids=lambda t: t["name"])
def test_functional_generation(test_case):
    """Unified test for all JSON test cases using a single pattern."""
    name = test_case["name"]
    source_file = test_case.get("_source_file", "unknown")

    print(f"\nTesting: {name} (from {source_file})")
    print(f"Description: {test_case['description']}")

    for language in ("typescript", "python"):
        key = f"expected_{language}"
        not_key = f"expected_not_{language}"
        if key not in test_case and not_key not in test_case:
            continue

        generated_code = _generate_code(test_case, language)
        print(f"Generated {language} code:\n{generated_code}")

        for expected in test_case.get(key, []):
            assert expected in generated_code, f"Expected pattern '{expected}' not found in {language} output"
        for unexpected in test_case.get(not_key, []):
            assert unexpected not in generated_code, f"Unexpected pattern '{unexpected}' found in {language} output"


if __name__ == "__main__":
    pytest.main([__file__])
