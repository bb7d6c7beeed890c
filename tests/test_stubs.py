"""Tests for reading argument counts from Go stubs."""

from goasmify.stubs import count_parameters, parse_stubs

from listings import STUB


def test_parse_stubs():
    assert parse_stubs(STUB) == {"scale": 2, "count": 7}


def test_grouped_parameters():
    assert count_parameters("a, b, c unsafe.Pointer, n int") == 4


def test_no_parameters():
    assert parse_stubs("func _tick()") == {"tick": 0}


def test_name_without_underscore():
    assert parse_stubs("func plain(x uint64)") == {"plain": 1}
