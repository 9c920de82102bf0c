"""Tests for the value model in funqy._values."""

import math

import pytest

from funqy._ast import Var, VarPattern
from funqy._env import Environment
from funqy._errors import DegenerateStateError
from funqy._values import (
    NULL_STATE,
    ONE,
    Closure,
    DataType,
    Superposition,
    TupleValue,
    branches_of,
    classical,
    format_amplitude,
    format_value,
    from_polar,
    merge,
    normalize,
    phase_flip,
    probabilities,
    superpose,
    tensor,
    tensor_all,
    total_mass,
    values_equal,
)

# --- Fixtures ---

BOOL = DataType("Bool", ("F", "T"))
F, T = BOOL.atoms()
H = 1 / math.sqrt(2)


def plus() -> Superposition:
    return Superposition(((F, complex(H)), (T, complex(H))))


class TestDataType:
    """Tests for DataType and Atom."""

    def test_atoms_in_declaration_order(self) -> None:
        assert [atom.tag for atom in BOOL.atoms()] == ["F", "T"]
        assert F.index == 0
        assert T.index == 1

    def test_atom_lookup(self) -> None:
        assert BOOL.atom("T") == T

    def test_unknown_variant_raises(self) -> None:
        with pytest.raises(ValueError, match="not a variant"):
            BOOL.atom("X")

    def test_atoms_of_equal_types_are_equal(self) -> None:
        assert DataType("Bool", ("F", "T")).atom("F") == F


class TestSuperposition:
    """Tests for Superposition construction and equality."""

    def test_empty_branches_rejected(self) -> None:
        with pytest.raises(ValueError, match="at least one branch"):
            Superposition(())

    def test_nested_superposition_rejected(self) -> None:
        with pytest.raises(TypeError, match="must not be superpositions"):
            Superposition(((plus(), ONE),))

    def test_equality_ignores_branch_order(self) -> None:
        reordered = Superposition(((T, complex(H)), (F, complex(H))))
        assert plus() == reordered

    def test_unhashable(self) -> None:
        with pytest.raises(TypeError):
            hash(plus())


class TestClassical:
    """Tests for classical()."""

    def test_plain_value(self) -> None:
        assert classical(F) == F

    def test_single_unit_branch_is_definite(self) -> None:
        assert classical(Superposition(((T, ONE),))) == T

    def test_flipped_single_branch_is_not_definite(self) -> None:
        assert classical(phase_flip(T)) is None

    def test_superposition_is_not_definite(self) -> None:
        assert classical(plus()) is None
        assert classical(NULL_STATE) is None


class TestMerge:
    """Tests for merge()."""

    def test_sums_identical_branches(self) -> None:
        merged = merge(superpose([(F, 0.5 + 0j), (T, 0.5 + 0j), (F, 0.5 + 0j)]))
        assert branches_of(merged) == ((F, 1.0 + 0j), (T, 0.5 + 0j))

    def test_idempotent(self) -> None:
        value = superpose([(F, 0.3 + 0j), (T, 0.4 + 0j), (F, -0.1 + 0j)])
        once = merge(value)
        assert branches_of(merge(once)) == branches_of(once)

    def test_destructive_interference_drops_branch(self) -> None:
        merged = merge(superpose([(F, ONE), (F, -ONE), (T, ONE)]))
        assert branches_of(merged) == ((T, ONE),)

    def test_full_cancellation_is_null_state(self) -> None:
        assert merge(superpose([(F, ONE), (F, -ONE)])) is NULL_STATE

    def test_plain_value_unchanged(self) -> None:
        assert merge(F) == F


class TestNormalize:
    """Tests for normalize()."""

    def test_unit_mass(self) -> None:
        value = normalize(superpose([(F, 2 + 0j), (T, 2j)]))
        assert total_mass(value) == pytest.approx(1.0)

    def test_round_trip(self) -> None:
        once = normalize(superpose([(F, 3 + 0j), (T, 4 + 0j)]))
        twice = normalize(once)
        for (left, a), (right, b) in zip(branches_of(once), branches_of(twice), strict=True):
            assert left == right
            assert a == pytest.approx(b)

    def test_null_state_raises(self) -> None:
        with pytest.raises(DegenerateStateError):
            normalize(NULL_STATE)

    def test_zero_mass_raises(self) -> None:
        with pytest.raises(DegenerateStateError, match="zero probability"):
            normalize(Superposition(((F, 0j),)))

    def test_probabilities(self) -> None:
        result = probabilities(superpose([(F, ONE), (T, ONE)]))
        assert [value for value, _ in result] == [F, T]
        assert [p for _, p in result] == pytest.approx([0.5, 0.5])


class TestTensor:
    """Tests for tensor() and tensor_all()."""

    def test_classical_components_form_plain_tuple(self) -> None:
        assert tensor_all([F, T]) == TupleValue((F, T))

    def test_superposed_component(self) -> None:
        pair = tensor(plus(), F)
        assert branches_of(pair) == (
            (TupleValue((F, F)), complex(H)),
            (TupleValue((T, F)), complex(H)),
        )

    def test_amplitudes_multiply(self) -> None:
        pair = tensor(plus(), plus())
        assert len(branches_of(pair)) == 4
        assert total_mass(pair) == pytest.approx(1.0)
        assert all(amplitude == pytest.approx(0.5) for _, amplitude in branches_of(pair))


class TestValuesEqual:
    """Tests for values_equal()."""

    def test_scale_invariant(self) -> None:
        assert values_equal(superpose([(F, 2 + 0j), (T, 2 + 0j)]), plus())

    def test_global_phase_is_significant(self) -> None:
        assert not values_equal(T, phase_flip(T))

    def test_relative_phase_is_significant(self) -> None:
        minus = Superposition(((F, complex(H)), (T, complex(-H))))
        assert not values_equal(plus(), minus)

    def test_definite_value_equals_unit_branch(self) -> None:
        assert values_equal(F, Superposition(((F, ONE),)))

    def test_null_states(self) -> None:
        assert values_equal(NULL_STATE, NULL_STATE)
        assert not values_equal(NULL_STATE, F)


class TestFormat:
    """Tests for value and amplitude formatting."""

    def test_atom_and_tuple(self) -> None:
        assert format_value(TupleValue((F, T))) == "(F, T)"
        assert format_value(TupleValue(())) == "()"

    def test_superposition(self) -> None:
        assert format_value(plus()) == "{F: 0.7071, T: 0.7071}"
        assert format_value(plus(), precision=2) == "{F: 0.71, T: 0.71}"

    def test_unit_branch_shows_bare_value(self) -> None:
        assert format_value(Superposition(((T, ONE),))) == "T"

    def test_flipped_branch(self) -> None:
        assert format_value(phase_flip(T)) == "{T: -1}"

    def test_null_state(self) -> None:
        assert format_value(NULL_STATE) == "{}"

    def test_closure(self) -> None:
        closure = Closure(VarPattern("x"), Var("x"), Environment.empty())
        assert format_value(closure) == "<fn>"
        named = Closure(VarPattern("x"), Var("x"), Environment.empty(), name="id")
        assert format_value(named) == "<fn id>"

    @pytest.mark.parametrize(
        ("amplitude", "expected"),
        [
            (complex(1, 0), "1"),
            (complex(0.5, -0.5), "0.5-0.5i"),
            (complex(0.25, 0.5), "0.25+0.5i"),
            (1j, "1i"),
            (complex(-1e-12, 0), "0"),
        ],
    )
    def test_amplitude(self, amplitude: complex, expected: str) -> None:
        assert format_amplitude(amplitude) == expected

    def test_from_polar(self) -> None:
        assert from_polar(math.pi) == pytest.approx(-1)
        assert from_polar(math.pi / 2, 0.5) == pytest.approx(0.5j)
