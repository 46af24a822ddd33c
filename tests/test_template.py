import pytest

from route_metrics.common.config import load_template
from route_metrics.common.models import Template, parse_route_signature
from route_metrics.engine.template import bucketize, matching_routes
from route_metrics.errors import TemplateError


def make_template(*routes):
    return Template.from_dict({"version": "1.0.0", "routes": list(routes)})


@pytest.mark.parametrize("data, message", [
    ({"version": "0.9.0", "routes": []}, "unknown template version 0.9.0"),
    ({"routes": []}, "unknown template version None"),
    ({"version": "1.0.0", "routes": {"a": 1}}, "template routes must be an array"),
    ({"version": "1.0.0", "routes": [{"method": "GET", "pattern": "/"}]},
     "template routes must have a name and method property"),
    ({"version": "1.0.0", "routes": [{"name": "root", "pattern": "/"}]},
     "template routes must have a name and method property"),
    ({"version": "1.0.0", "routes": [{"name": "root", "method": "GET"}]},
     "route root must have either pattern or regex"),
    ({"version": "1.0.0", "routes": [{"name": "both", "method": "GET", "pattern": "/", "regex": "^/"}]},
     "route both must have either pattern or regex"),
    ({"version": "1.0.0", "routes": [{"name": "bad", "method": "GET", "regex": "(unclosed"}]},
     "route bad has an invalid regex"),
])
def test_invalid_templates(data, message):
    with pytest.raises(TemplateError) as exc_info:
        Template.from_dict(data)

    assert str(exc_info.value).startswith(message)


def test_regex_strings_are_compiled():
    template = make_template({"name": "users", "method": "GET", "regex": r"^/users/\d+$"})

    assert template.routes[0].regex.search("/users/42")


def test_parse_route_signature():
    props = parse_route_signature("GET https://example.com:443/a/b?c=d")

    assert (props.method, props.path) == ("GET", "/a/b?c=d")
    assert parse_route_signature("garbage") is None


def test_pattern_is_exact_and_method_must_match():
    template = make_template({"name": "root", "method": "GET", "pattern": "/"})

    assert matching_routes(template, "GET http://a:80/") == ["root"]
    assert matching_routes(template, "POST http://a:80/") == []
    assert matching_routes(template, "GET http://a:80/index") == []


def test_overlapping_rules_fan_out():
    template = make_template(
        {"name": "all users", "method": "GET", "regex": "^/users"},
        {"name": "one user", "method": "GET", "regex": r"^/users/\d+$"},
        {"name": "health", "method": "GET", "pattern": "/health"},
    )
    metrics = {
        "GET http://a:80/users/1": {"200": [10, 20], "404": [5]},
        "GET http://a:80/users": {"200": [30]},
        "GET http://a:80/other": {"500": [99]},
        "POST http://a:80/users/2": {"201": [7]},
    }

    buckets = bucketize(metrics, template)

    assert list(buckets) == [
        "all users", "one user", "GET http://a:80/other", "POST http://a:80/users/2"
    ]
    assert sorted(buckets["all users"]["200"]) == [10, 20, 30]
    assert buckets["all users"]["404"] == [5]
    assert buckets["one user"] == {"200": [10, 20], "404": [5]}
    assert buckets["GET http://a:80/other"] == {"500": [99]}


def test_bucketize_keeps_template_order_and_copies():
    template = make_template(
        {"name": "zeta", "method": "GET", "pattern": "/z"},
        {"name": "alpha", "method": "GET", "pattern": "/a"},
        {"name": "unused", "method": "GET", "pattern": "/nothing"},
    )
    metrics = {
        "GET http://a:80/a": {"200": [1]},
        "GET http://a:80/z": {"200": [2]},
        "GET http://a:80/c": {"200": [3]},
        "GET http://a:80/b": {"200": [4]},
    }

    buckets = bucketize(metrics, template)
    buckets["zeta"]["200"].append(1000)

    assert list(buckets) == ["zeta", "alpha", "GET http://a:80/b", "GET http://a:80/c"]
    assert metrics["GET http://a:80/z"] == {"200": [2]}


def test_load_template_json_and_toml(tmp_path):
    json_file = tmp_path / "template.json"
    json_file.write_text(
        '{"version": "1.0.0", "routes": [{"name": "root", "method": "GET", "pattern": "/"}]}'
    )
    toml_file = tmp_path / "template.toml"
    toml_file.write_text(
        'version = "1.0.0"\n\n'
        '[[routes]]\nname = "items"\nmethod = "GET"\nregex = "^/items/"\n'
    )

    assert load_template(json_file).routes[0].pattern == "/"
    assert load_template(toml_file).routes[0].regex.pattern == "^/items/"


def test_load_template_errors(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")

    with pytest.raises(TemplateError, match="cannot parse template"):
        load_template(broken)
    with pytest.raises(TemplateError, match="cannot read template"):
        load_template(tmp_path / "missing.json")
