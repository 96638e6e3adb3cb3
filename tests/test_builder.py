from api_doc_gen.errors import DiagnosticKind, Diagnostics
from api_doc_gen.model.builder import build_model, merge_parameters
from api_doc_gen.model.routes import ApiInfo, Param, SecurityScheme
from api_doc_gen.parser.extractor import extract_file

SCHEMES = {"bearerAuth": SecurityScheme(type="http-bearer", bearer_format="JWT")}


def _file(name: str, source: str):
    return extract_file(name, source=source.encode("utf-8"))


class TestBuildModel:
    def test_end_to_end_descriptor(self):
        source = (
            "/**\n"
            " * @summary Get one item\n"
            " * @param {string} id - Item id\n"
            " * @response 200 - OK\n"
            " * @response 404 - Not found\n"
            " */\n"
            "router.get('/items/:id', getItem);\n"
        )
        model, diagnostics = build_model([_file("items.js", source)])
        assert not diagnostics
        route = model.get("GET", "/items/:id")
        assert route.path == "/items/:id"
        assert route.summary == "Get one item"
        assert [(p.name, p.location, p.param_type, p.required) for p in route.parameters] == [
            ("id", "path", "string", True)
        ]
        assert {code: r.description for code, r in route.responses.items()} == {200: "OK", 404: "Not found"}
        assert route.handlers == ["getItem"]
        assert str(route.source) == "items.js:7"

    def test_unannotated_route_is_silent(self):
        model, diagnostics = build_model([_file("a.js", "router.get('/a/:id', h);\n")])
        assert not diagnostics
        route = model.routes[0]
        assert [(p.name, p.required) for p in route.parameters] == [("id", True)]
        assert route.responses == {}

    def test_annotation_overrides_call_site(self):
        source = "/** @route PUT /b/{key} */\nrouter.get('/a', h);\n"
        model, _ = build_model([_file("a.js", source)])
        assert model.get("PUT", "/b/:key") is not None
        assert model.get("GET", "/a") is None

    def test_collision_first_wins(self):
        first = _file("a.js", "/** @summary First */\nrouter.get('/x/:id', h);\n")
        second = _file("b.js", "/** @summary Second */\nrouter.get('/x/:key', h);\n")
        # input order does not matter; files merge in path order
        model, diagnostics = build_model([second, first])
        assert len(model.routes) == 1
        assert model.routes[0].summary == "First"
        [warning] = diagnostics.of_kind(DiagnosticKind.ROUTE_COLLISION)
        assert "a.js:2" in warning.message and "b.js:2" in warning.message
        assert warning.file == "b.js"

    def test_route_without_leading_slash(self):
        source = "/** @route GET users/:id */\nrouter.get('/users/:id', h);\nrouter.get('health', h);\n"
        model, diagnostics = build_model([_file("a.js", source)])
        assert [route.path for route in model.routes] == ["/users/:id"]
        assert diagnostics.of_kind(DiagnosticKind.ANNOTATION)
        [skipped] = diagnostics.of_kind(DiagnosticKind.PARSE)
        assert skipped.line == 3 and "'health'" in skipped.message

    def test_brace_placeholder_followed_by_name_characters(self):
        model, diagnostics = build_model([_file("a.js", "router.get('/a/{id}_raw', h);\n")])
        assert not diagnostics
        route = model.routes[0]
        assert [p.name for p in route.parameters] == ["id"]
        assert route.openapi_path == "/a/{id}_raw"

    def test_same_path_different_methods(self):
        model, diagnostics = build_model([_file("a.js", "router.get('/x', h);\nrouter.post('/x', h);\n")])
        assert len(model.routes) == 2
        assert not diagnostics

    def test_extraction_diagnostics_are_carried(self):
        model, diagnostics = build_model([_file("a.js", "router.get(`${p}`, h);\n")])
        assert model.routes == ()
        assert diagnostics.of_kind(DiagnosticKind.DYNAMIC_ROUTE)

    def test_unknown_security_scheme_dropped(self):
        source = "/**\n * @security bearerAuth\n * @security oauth\n */\nrouter.get('/a', h);\n"
        model, diagnostics = build_model([_file("a.js", source)], security_schemes=SCHEMES)
        assert model.routes[0].security == ["bearerAuth"]
        [warning] = diagnostics.of_kind(DiagnosticKind.UNKNOWN_SECURITY_SCHEME)
        assert "oauth" in warning.message

    def test_unknown_tag_warned_once(self):
        source = "/** @tag Misc */\nrouter.get('/a', h);\n/** @tag Misc */\nrouter.get('/b', h);\n"
        model, diagnostics = build_model([_file("a.js", source)], tags={"Users": ""})
        assert len(diagnostics.of_kind(DiagnosticKind.UNKNOWN_TAG)) == 1
        assert model.routes[1].tags == ["Misc"]

    def test_unknown_tag_warning_can_be_disabled(self):
        source = "/** @tag Misc */\nrouter.get('/a', h);\n"
        _, diagnostics = build_model([_file("a.js", source)], warn_unknown_tags=False)
        assert not diagnostics

    def test_deprecated(self):
        model, _ = build_model([_file("a.js", "// @deprecated\nrouter.get('/a', h);\n")])
        assert model.routes[0].deprecated is True

    def test_registries_and_info(self):
        info = ApiInfo(title="T", version="9")
        model, _ = build_model([], tags={"A": "a"}, schemas={"S": {"type": "object"}}, info=info)
        assert model.routes == ()
        assert model.tags == {"A": "a"}
        assert model.schemas == {"S": {"type": "object"}}
        assert model.info.title == "T"


class TestMergeParameters:
    def test_synthesizes_missing_path_params_in_order(self):
        params = merge_parameters("/a/:x/b/:y", [Param(name="q", location="query", required=False)])
        assert [(p.name, p.location) for p in params] == [("x", "path"), ("y", "path"), ("q", "query")]
        assert all(p.required for p in params[:2])

    def test_explicit_type_wins_required_inferred(self):
        declared = [Param(name="id", location="path", param_type="integer", required=False, description="Id")]
        [param] = merge_parameters("/a/:id", declared)
        assert param.param_type == "integer"
        assert param.required is True
        assert param.description == "Id"

    def test_path_param_not_in_path_dropped(self):
        diagnostics = Diagnostics()
        params = merge_parameters("/a", [Param(name="id", location="path")], diagnostics)
        assert params == []
        assert diagnostics.of_kind(DiagnosticKind.ANNOTATION)

    def test_duplicates_first_wins(self):
        diagnostics = Diagnostics()
        declared = [
            Param(name="q", location="query", description="first"),
            Param(name="q", location="query", description="second"),
            Param(name="q", location="header"),
        ]
        params = merge_parameters("/a", declared, diagnostics)
        assert [(p.name, p.location, p.description) for p in params] == [
            ("q", "query", "first"),
            ("q", "header", ""),
        ]
        assert len(diagnostics) == 1

