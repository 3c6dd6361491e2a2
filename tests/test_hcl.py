from __future__ import annotations

import pytest

from build_manifest import hcl
from build_manifest.hcl import Expression, HclSyntaxError


def test_loads_literal_attributes() -> None:
    text = (
        "# leading comment\n"
        'region   = "us-east-1"\n'
        "count    = 3\n"
        "ratio    = 0.25\n"
        "big      = 1e3\n"
        "enabled  = true\n"
        "disabled = false\n"
        "nothing  = null\n"
        "// another comment\n"
        "/* block\n   comment */\n"
        'zones    = ["a", "b",]\n'
        "tags = {\n"
        '  team   = "infra"\n'
        '  "cost center": 42,\n'
        "  nested = { deep = [1, 2] }\n"
        "}\n"
        "negative = -7 # trailing comment\n"
    )

    assert hcl.loads(text) == {
        "region": "us-east-1",
        "count": 3,
        "ratio": 0.25,
        "big": 1000.0,
        "enabled": True,
        "disabled": False,
        "nothing": None,
        "zones": ["a", "b"],
        "tags": {"team": "infra", "cost center": 42, "nested": {"deep": [1, 2]}},
        "negative": -7,
    }


def test_loads_string_escapes() -> None:
    text = r'value = "tab\there \"quoted\" back\\slash é $${literal} %%{directive}"' + "\n"

    assert hcl.loads(text) == {"value": 'tab\there "quoted" back\\slash é ${literal} %{directive}'}


def test_loads_heredocs() -> None:
    text = (
        "plain = <<EOT\n"
        "line one\n"
        "  line two\n"
        "EOT\n"
        "indented = <<-EOT\n"
        "    hello\n"
        "      world\n"
        "    EOT\n"
    )

    assert hcl.loads(text) == {
        "plain": "line one\n  line two\n",
        "indented": "hello\n  world\n",
    }


def test_loads_keeps_unevaluable_expressions_as_source() -> None:
    text = (
        "ami   = var.base_ami\n"
        'name  = "ami-${local.suffix}"\n'
        "zones = [for z in var.zones : upper(z)]\n"
        "tags  = merge(local.tags, { a = 1 })\n"
        'mixed = { id = var.id, fixed = "x" }\n'
    )

    attributes = hcl.loads(text)

    assert attributes == {
        "ami": Expression("var.base_ami"),
        "name": Expression('"ami-${local.suffix}"'),
        "zones": Expression("[for z in var.zones : upper(z)]"),
        "tags": Expression("merge(local.tags, { a = 1 })"),
        "mixed": Expression('{ id = var.id, fixed = "x" }'),
    }
    assert hcl.dumps(attributes) == text.replace("ami   =", "ami =").replace("name  =", "name =").replace(
        "tags  =", "tags ="
    )


def test_loads_call_spanning_comments_and_heredocs() -> None:
    text = (
        "tags = merge(local.a, # see )\n"
        "  local.b)\n"
        'note = join("", [/* ) */ "x"])\n'
        "msg = trimspace(<<EOT\n"
        "close ) here\n"
        "EOT\n"
        ")\n"
    )

    assert hcl.loads(text) == {
        "tags": Expression("merge(local.a, # see )\n  local.b)"),
        "note": Expression('join("", [/* ) */ "x"])'),
        "msg": Expression("trimspace(<<EOT\nclose ) here\nEOT\n)"),
    }


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ('source "amazon-ebs" "example" {\n}\n', "blocks are not supported"),
        ("build {\n}\n", "blocks are not supported"),
        ("a = 1\na = 2\n", "duplicate attribute"),
        ('a = "unterminated\n', "unterminated string"),
        ("a = 1 + 2\n", "unexpected"),
        ("a = [1 2]\n", "expected ',' or ']'"),
        ("a = { x = 1 y = 2 }\n", "after object item"),
        ("= 1\n", "expected an attribute name"),
        ('a = "bad \\q escape"\n', "invalid escape"),
    ],
)
def test_loads_rejects_invalid_documents(text: str, message: str) -> None:
    with pytest.raises(HclSyntaxError, match=message):
        hcl.loads(text, filename="vars.pkrvars.hcl")


def test_syntax_error_reports_position() -> None:
    with pytest.raises(HclSyntaxError) as excinfo:
        hcl.loads('ok = 1\nbad = "open\n', filename="vars.pkrvars.hcl")

    assert excinfo.value.line == 2
    assert excinfo.value.column == 7
    assert str(excinfo.value).startswith("vars.pkrvars.hcl:2,7:")


def test_loads_empty_document() -> None:
    assert hcl.loads("") == {}
    assert hcl.loads("\n  # only a comment\n") == {}


def test_dumps_formats_nested_objects_with_sorted_keys() -> None:
    text = hcl.dumps({"region": "us-east-1", "manifest": {"b": {"x": 1}, "a": [1, 2]}})

    assert text == 'region = "us-east-1"\nmanifest = {\n  a = [1, 2]\n  b = {\n    x = 1\n  }\n}\n'


def test_dumps_formats_tuple_of_objects_one_per_line() -> None:
    text = hcl.dumps({"files": [{"name": "a", "size": 1}]})

    assert text == 'files = [\n  {\n    name = "a"\n    size = 1\n  },\n]\n'


def test_dumps_quotes_keys_and_escapes_strings() -> None:
    text = hcl.dumps({"data": {"my key": "${x}", "true": "line\nbreak", "ok_key": 1.0}})

    assert text == 'data = {\n  "my key" = "$${x}"\n  ok_key = 1\n  "true" = "line\\nbreak"\n}\n'


def test_dumps_output_parses_back_to_same_values() -> None:
    attributes = {
        "manifest": {
            "group": {
                "amazon-ebs": {
                    "ubuntu": {
                        "artifact_id": "ami-123",
                        "packer_run_uuid": "",
                        "custom_data": {"owner": 'team "infra"', "template": "${var.x}"},
                        "files": [{"name": "disk.raw", "size": 1024}, {"name": "disk.vmdk", "size": 0}],
                    }
                }
            }
        },
        "empty_list": [],
        "empty_map": {},
        "flags": [True, False, None],
        "ratio": 1.5,
    }

    assert hcl.loads(hcl.dumps(attributes)) == attributes


def test_dumps_rejects_unencodable_values() -> None:
    with pytest.raises(ValueError):
        hcl.dumps({"bad": float("nan")})
    with pytest.raises(TypeError):
        hcl.dumps({"bad": object()})
    with pytest.raises(ValueError, match="invalid attribute name"):
        hcl.dumps({"not valid": 1})


def test_as_mapping() -> None:
    assert hcl.as_mapping({"a": 1}) == {"a": 1}
    assert hcl.as_mapping("text") is None
    assert hcl.as_mapping(Expression("var.x")) is None
    assert hcl.as_mapping(None) is None
