from api_doc_gen.generator.validator import (
    validate_files,
    validate_html,
    validate_json,
    validate_openapi,
    validate_yaml,
)


def _doc(**paths) -> dict:
    return {
        "openapi": "3.0.3",
        "info": {"title": "T", "version": "1"},
        "paths": paths or {},
    }


def _op(**extra) -> dict:
    op = {"operationId": extra.pop("operationId", "op"), "responses": {"200": {"description": "OK"}}}
    op.update(extra)
    return op


class TestValidateOpenapi:
    def test_minimal_document(self):
        assert validate_openapi(_doc()) == []

    def test_wrong_version(self):
        doc = _doc()
        doc["openapi"] = "2.0"
        assert any("version" in p for p in validate_openapi(doc))

    def test_missing_info(self):
        doc = _doc()
        del doc["info"]
        assert validate_openapi(doc)

    def test_undeclared_path_parameter(self):
        doc = {**_doc(), "paths": {"/items/{id}": {"get": _op()}}}
        problems = validate_openapi(doc)
        assert problems == ["GET /items/{id}: path parameter 'id' is not declared"]

    def test_path_without_leading_slash(self):
        doc = {**_doc(), "paths": {"users": {"get": _op()}}}
        assert validate_openapi(doc) == ["Path 'users' must start with '/'"]

    def test_path_parameter_must_be_required(self):
        param = {"name": "id", "in": "path", "required": False, "schema": {"type": "string"}}
        doc = {**_doc(), "paths": {"/items/{id}": {"get": _op(parameters=[param])}}}
        assert validate_openapi(doc) == ["GET /items/{id}: path parameter 'id' must be required"]

    def test_extra_path_parameter(self):
        param = {"name": "id", "in": "path", "required": True}
        doc = {**_doc(), "paths": {"/items": {"get": _op(parameters=[param])}}}
        assert validate_openapi(doc) == ["GET /items: parameter 'id' is not in the path template"]

    def test_non_string_response_key(self):
        op = _op()
        op["responses"] = {200: {"description": "OK"}}
        doc = {**_doc(), "paths": {"/a": {"get": op}}}
        assert validate_openapi(doc) == ["GET /a: response key 200 is not a string"]

    def test_unknown_security_scheme(self):
        doc = {**_doc(), "paths": {"/a": {"get": _op(security=[{"oauth": []}])}}}
        assert validate_openapi(doc) == ["GET /a: unknown security scheme 'oauth'"]

    def test_unresolvable_ref(self):
        op = _op()
        op["responses"]["200"]["content"] = {"application/json": {"schema": {"$ref": "#/components/schemas/Nope"}}}
        doc = {**_doc(), "paths": {"/a": {"get": op}}}
        assert validate_openapi(doc) == ["Unresolvable $ref: #/components/schemas/Nope"]

    def test_duplicate_operation_ids(self):
        doc = {**_doc(), "paths": {"/a": {"get": _op()}, "/b": {"get": _op()}}}
        assert validate_openapi(doc) == ["GET /b: duplicate operationId 'op'"]


class TestValidateJson:
    def test_valid(self):
        assert validate_json({"openapi.json": b'{"a": 1}'}) == {}

    def test_invalid(self):
        errors = validate_json({"openapi.json": b"{nope"})
        assert "JSONError" in errors["openapi.json"]

    def test_skips_other_files(self):
        assert validate_json({"API.md": b"{nope"}) == {}


class TestValidateYaml:
    def test_valid_yaml(self):
        assert validate_yaml({"openapi.yaml": b"name: test\nage: 20\n"}) == {}

    def test_invalid_yaml(self):
        errors = validate_yaml({"bad.yaml": b"key: [invalid\n"})
        assert "bad.yaml" in errors


class TestValidateHtml:
    def test_missing_document(self):
        errors = validate_html({"index.html": b"<html></html>"})
        assert "not found" in errors["index.html"]

    def test_valid_page(self):
        page = b'<script type="application/json" id="api-spec">{"openapi": "3.0.3"}</script>'
        assert validate_html({"index.html": page}) == {}


class TestValidateFiles:
    def test_collects_all_errors(self):
        errors = validate_files({
            "openapi.json": b"{",
            "openapi.yaml": b"a: [",
            "index.html": b"",
            "API.md": b"# fine",
        })
        assert set(errors) == {"openapi.json", "openapi.yaml", "index.html"}
