import pytest

from codeprobe.services.parser import ParseFailure, ParseOptions, parse


def test_options_for_filename():
    assert ParseOptions.for_filename("src/App.tsx").allow_jsx is True
    assert ParseOptions.for_filename("src/App.jsx").allow_jsx is True
    assert ParseOptions.for_filename("src/index.js").allow_jsx is True
    assert ParseOptions.for_filename("src/api.ts").allow_jsx is False
    assert ParseOptions.for_filename("src\\api.MTS").allow_jsx is False


def test_default_options():
    options = ParseOptions()
    assert options.dialect == "module"
    assert options.allow_jsx
    assert options.allow_type_annotations
    assert options.error_recovery


def test_parse_jsx_and_types():
    tree = parse("const A = (p: { n: number }) => <div>{p.n}</div>;\n")
    assert tree.root_node.type == "program"
    assert not tree.root_node.has_error


def test_parse_angle_bracket_assertion_without_jsx():
    tree = parse("const n = <number>value;\n", ParseOptions(allow_jsx=False))
    assert not tree.root_node.has_error


def test_strict_mode_rejects_any_syntax_error():
    with pytest.raises(ParseFailure) as excinfo:
        parse("const x = (1 + ;\n", ParseOptions(error_recovery=False))

    assert "(1:" in excinfo.value.message


@pytest.mark.parametrize("source", ["@@@", "function ("])
def test_recovery_mode_rejects_top_level_error(source):
    with pytest.raises(ParseFailure) as excinfo:
        parse(source)

    assert excinfo.value.message == "Unexpected token (1:0)"


def test_recovery_mode_keeps_nested_error():
    tree = parse("const x = ;\n")

    assert tree.root_node.type == "program"
    assert tree.root_node.has_error


def test_parse_accepts_lone_surrogate():
    tree = parse('const a = "\ud800";\n')

    assert tree.root_node.type == "program"
