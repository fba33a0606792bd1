# tests/test_grammar.py
from __future__ import annotations

import pytest

from confsh.dispatch import Direct, Symbolic
from confsh.grammar import (
    Argument,
    Choice,
    Keyword,
    Option,
    Sequence,
    TokenGrammar,
    build_command,
    node_from_dict,
)


def make_grammar() -> TokenGrammar:
    show = Sequence(
        Keyword("show", help="display information"),
        Choice(
            Keyword("version", help="display version"),
            Sequence(Keyword("name"), help="display name"),
        ),
    )
    setter = Sequence(
        Keyword("set"),
        Keyword("port"),
        Argument("number", r"\d+", help="port number"),
        help="set the port",
    )
    ping = Sequence(
        Keyword("ping"),
        Option(Sequence(Keyword("count"), Argument("count", r"\d+"))),
        Argument("host"),
        help="ping a host",
    )
    return TokenGrammar(Choice(show, setter, ping))


# -------------------------------------------------------------------
# parse
# -------------------------------------------------------------------


def test_parse_complete_match_collects_args() -> None:
    g = make_grammar()
    m = g.parse("set port 8080")
    assert m is not None and m.matches
    assert m.arg_str("number") == "8080"
    assert m.arg_int("number") == 8080
    assert m.tokens == ["set", "port", "8080"]


def test_parse_incomplete_or_wrong_input_is_not_a_match() -> None:
    g = make_grammar()
    for line in ["set port", "set port abc", "show", "bogus", ""]:
        m = g.parse(line)
        assert m is not None
        assert m.matches is False, line


def test_parse_unbalanced_quotes_returns_none() -> None:
    g = make_grammar()
    assert g.parse('ping "10.0.0.1') is None


def test_parse_quoted_argument_is_one_token() -> None:
    g = make_grammar()
    m = g.parse('ping "my host"')
    assert m is not None and m.matches
    assert m.arg_str("host") == "my host"


def test_option_may_be_present_or_absent() -> None:
    g = make_grammar()
    short = g.parse("ping 10.0.0.1")
    full = g.parse("ping count 3 10.0.0.1")
    assert short is not None and short.matches
    assert short.arg_str("count") is None
    assert full is not None and full.matches
    assert full.arg_int("count") == 3
    assert full.arg_str("host") == "10.0.0.1"


def test_match_chain_is_outermost_first() -> None:
    g = make_grammar()
    m = g.parse("show version")
    assert m is not None
    assert m.nodes[0] is g.root
    assert isinstance(m.nodes[-1], Keyword)
    assert m.nodes[-1].string == "version"


def test_arg_int_falls_back_to_default() -> None:
    g = make_grammar()
    m = g.parse("ping notanumber")
    assert m is not None
    assert m.arg_int("host", default=7) == 7
    assert m.arg_int("missing", default=-1) == -1


def test_arg_int_accepts_prefixed_literals() -> None:
    m = TokenGrammar(Sequence(Keyword("mask"), Argument("v"))).parse("mask 0x10")
    assert m is not None
    assert m.arg_int("v") == 16


def test_argument_requires_id() -> None:
    with pytest.raises(ValueError):
        Argument("")


@pytest.mark.parametrize("pattern", ["[", 12])
def test_argument_rejects_bad_pattern(pattern) -> None:
    with pytest.raises(ValueError):
        Argument("value", pattern)


def test_from_dict_rejects_non_list_children() -> None:
    with pytest.raises(ValueError):
        TokenGrammar.from_dict({"type": "seq", "children": 5})


# -------------------------------------------------------------------
# complete
# -------------------------------------------------------------------


def test_complete_partial_first_token() -> None:
    g = make_grammar()
    assert g.complete("sh") == ["show"]
    assert g.complete("s") == ["show", "set"]
    assert g.complete("x") == []


def test_complete_after_space_lists_next_keywords() -> None:
    g = make_grammar()
    assert g.complete("show ") == ["version", "name"]


def test_complete_follows_accepted_prefix() -> None:
    g = make_grammar()
    assert g.complete("show v") == ["version"]
    assert g.complete("set p") == ["port"]


def test_complete_never_offers_arguments() -> None:
    g = make_grammar()
    assert g.complete("set port ") == []


def test_complete_sees_through_options() -> None:
    g = make_grammar()
    assert g.complete("ping c") == ["count"]


def test_complete_full_keyword_returns_itself() -> None:
    g = make_grammar()
    assert g.complete("show") == ["show"]


def test_complete_deduplicates_candidates() -> None:
    root = Choice(
        Sequence(Keyword("show"), Keyword("a")),
        Sequence(Keyword("show"), Keyword("b")),
    )
    assert TokenGrammar(root).complete("sh") == ["show"]


def test_complete_unbalanced_quotes_returns_nothing() -> None:
    assert make_grammar().complete('ping "x') == []


# -------------------------------------------------------------------
# build_command / iter_commands
# -------------------------------------------------------------------


def test_build_command_single_word_is_keyword() -> None:
    node = build_command("hello", help="say hello")
    assert isinstance(node, Keyword)
    assert node.help == "say hello"


def test_build_command_maps_argument_ids() -> None:
    arg = Argument("value")
    node = build_command("name value", arg)
    assert isinstance(node, Sequence)
    assert node.children[1] is arg
    assert node.syntax() == "name <value>"


def test_build_command_appends_unreferenced_nodes() -> None:
    opt = Option(Keyword("verbose"))
    node = build_command("dump", opt)
    assert node.syntax() == "dump [verbose]"


def test_build_command_rejects_empty_expression() -> None:
    with pytest.raises(ValueError):
        build_command("   ")


def test_iter_commands_lists_bound_leaves_with_prefix() -> None:
    version = Keyword("version", help="display version")
    version.bind(Direct(lambda s, m: None), callback="show_version")
    name = build_command("name value", Argument("value"), help="set name")
    name.bind(Direct(lambda s, m: None), callback="set_name")
    root = Choice(
        Sequence(Keyword("show"), Choice(version)),
        Sequence(Keyword("set"), Choice(name)),
    )
    assert list(TokenGrammar(root).iter_commands()) == [
        ("show version", "display version"),
        ("set name <value>", "set name"),
    ]


def test_iter_commands_tolerates_missing_help() -> None:
    node = Keyword("bare").bind(Direct(lambda s, m: None), callback="bare")
    assert list(TokenGrammar(Choice(node)).iter_commands()) == [("bare", "")]


# -------------------------------------------------------------------
# to_dict / from_dict
# -------------------------------------------------------------------


def test_to_dict_shape() -> None:
    node = build_command(
        "port number", Argument("number", r"\d+", help="port"), help="set port"
    )
    node.bind(Direct(lambda s, m: None), callback="set_port")
    assert node.to_dict() == {
        "type": "seq",
        "children": [
            {"type": "str", "string": "port"},
            {
                "type": "re",
                "id": "number",
                "pattern": r"\d+",
                "attrs": {"help": "port"},
            },
        ],
        "attrs": {"help": "set port", "callback": "set_port"},
    }


def test_from_dict_round_trips_and_binds_by_name() -> None:
    g = make_grammar()
    g.root.children[0].bind(Direct(lambda s, m: None), callback="show_cmd")
    data = g.to_dict()

    loaded = TokenGrammar.from_dict(data)
    assert loaded.to_dict() == data

    show = loaded.root.children[0]
    assert show.binding == Symbolic("show_cmd")
    m = loaded.parse("set port 22")
    assert m is not None and m.matches


def test_from_dict_rejects_unknown_types() -> None:
    with pytest.raises(ValueError):
        node_from_dict({"type": "loop"})
    with pytest.raises(ValueError):
        node_from_dict({"type": "str"})
    with pytest.raises(ValueError):
        node_from_dict({"type": "option", "children": []})
    with pytest.raises(ValueError):
        node_from_dict(["not", "a", "mapping"])  # type: ignore[arg-type]
