"""Tests for the Validator.

Tests cover:
- Expression and regexp rules on dataclass and pydantic fields
- Serialization directives (omitempty, "-") and private fields
- Addressable roots and private-field access
- References, proxies and cycles
- Type mappers, caching and copies
"""

import weakref
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest
from pydantic import BaseModel, Field, PrivateAttr

from tageval import (
    AccessError,
    ConfigurationError,
    CycleError,
    MappingError,
    Option,
    PatternError,
    Result,
    ScriptError,
    Validator,
    addressable,
    new_validator,
    tags,
)
from tageval.expressions import Runtime
from tageval.processor import is_zero_value


def correlate(results: list[Result]) -> list[tuple[str, bool]]:
    return [(r.name, r.valid) for r in results]


class TalkingInt(int):
    def talk(self) -> str:
        return f"Hi, I am '{int(self)}'"

    def __str__(self) -> str:
        return str(int(self))


class Proxy:
    """A transparent wrapper, the way functools.wraps-style proxies look."""

    def __init__(self, wrapped):
        self.__wrapped__ = wrapped


@dataclass
class Another:
    Fred: str = field(default="", metadata=tags(expr="len(Fred) < 10", json="fred"))
    Location: str = field(default="", metadata=tags(expr='"TX" in Location'))


@dataclass
class Olio:
    A: int = field(default=0, metadata=tags(expr="A > 5", json="a,omitempty"))
    B: datetime | None = field(default=None, metadata=tags(json="b"))
    C: str = field(default="", metadata=tags(regexp="^[aeiou]{4}$|hello"))
    D: list[Another] = field(
        default_factory=list, metadata=tags(expr="len(D) == 1", json="d,omitempty")
    )
    E: int | None = field(default=None, metadata=tags(expr="E == 4"))
    G: Another = field(
        default_factory=Another,
        metadata=tags(expr="len(G['Fred']) > 2 && G['Location'] == 'Oshkosh, WI'"),
    )
    H: TalkingInt | None = field(default=None, metadata=tags(expr="H < 400", regexp="^[0-9]$"))
    I: dict[str, int] = field(default_factory=dict)
    _j: str = field(default="", metadata=tags(expr="_j[0] == 'P'"))
    L: str = field(default="", metadata=tags(regexp="^[aeiou]{4}$|hello"))
    M: float = field(default=0.0, metadata=tags(expr="== 3.14"))
    N: datetime | None = field(default=None, metadata=tags(expr="N > fromTimestamp(0)"))
    P: list[int] = field(default_factory=list, metadata=tags(expr="let total = sum(P); total == 10"))
    Q: list[Any] = field(default_factory=list, metadata=tags(expr="len(Q) == 0"))


def make_olio() -> Olio:
    now = datetime.now(timezone.utc)
    return Olio(
        A=1,
        B=now,
        C="hello",
        D=[Another("Joe", "Plano, TX")],
        E=3,
        G=Another("bingo", "Oshkosh, WI"),
        H=TalkingInt(7),
        I={"green": 12, "blue": 93},
        _j="Pete",
        L="uoiea",
        M=3.14,
        N=now + timedelta(seconds=2),
        P=[1, 2, 3, 4],
    )


@dataclass
class Invoice:
    Total: int = field(metadata=tags(expr="Total > 5"))


@dataclass
class Pair:
    First: int
    Second: int


@dataclass
class Noyb:
    _blah: str = field(metadata=tags(regexp="^ick$", expr="_blah == 'ick'"))
    _bval: bool = field(metadata=tags(expr="!_bval"))
    _f: float = field(metadata=tags(expr="_f > 25"))
    _g: int = field(metadata=tags(expr="_g > 0"))


@dataclass
class Privy:
    _name: str = field(metadata=tags(expr="_name[0] == 'J'"))
    _age: int = field(metadata=tags(expr="_age > 21"))
    _things: tuple[int, int] = field(metadata=tags(expr="_things[0] > 2 && _things[1] > 0"))
    _other: list[Pair] = field(
        metadata=tags(expr="(_other[0]['Second'] - _other[0]['First']) == -155")
    )
    _iptr: Any = field(metadata=tags(expr="_iptr == 75"))
    _b: Noyb = field(default_factory=lambda: Noyb("ick", False, 45.1, 2))
    _y: int = field(default=0, metadata=tags(expr="!= 5"))
    _z: int | None = field(default=None, metadata=tags(expr="_z == 5"))


def make_privy() -> Privy:
    return Privy(
        _name="Joe",
        _age=62,
        _things=(3, 4),
        _other=[Pair(300, 145)],
        _iptr=Proxy(75),
    )


# =============================================================================
# End-to-end Tests
# =============================================================================


class TestValidate:
    """Tests for validating dataclass records."""

    def test_failing_expression(self):
        report = new_validator().validate(Invoice(4))

        assert report.valid is False
        assert report.results == [Result("Total", 4, "int", "Total > 5", False)]

    def test_passing_expression_reports_nothing(self):
        report = new_validator().validate(Invoice(6))

        assert report.valid is True
        assert report.results == []

    def test_failing_regexp(self):
        @dataclass
        class Address:
            State: str = field(metadata=tags(regexp="^[A-Z]{2}$"))

        report = new_validator().validate(Address("ARK"))

        assert report.valid is False
        assert report.results == [Result("State", "ARK", "str", "^[A-Z]{2}$", False)]

    def test_olio(self):
        validator = new_validator(Option("show_successes", True))

        report = validator.validate(make_olio())

        assert report.valid is False
        assert correlate(report.results) == [
            ("A", False),
            ("C", True),
            ("D", True),
            ("Fred", True),
            ("Location", True),
            ("E", False),
            ("G", True),
            ("Fred", True),
            ("Location", False),
            ("H", True),
            ("H", True),
            ("L", False),
            ("M", True),
            ("N", True),
            ("P", True),
            ("Q", True),
        ]

    def test_zero_values(self):
        validator = new_validator(Option("show_successes", True))

        report = validator.validate(Olio())

        assert report.valid is False
        assert correlate(report.results) == [
            ("C", False),
            ("G", False),
            ("Fred", True),
            ("Location", False),
            ("L", False),
            ("M", False),
            ("P", False),
            ("Q", True),
        ]

    def test_failures_only_by_default(self):
        report = new_validator().validate(make_olio())

        assert correlate(report.results) == [
            ("A", False),
            ("E", False),
            ("Location", False),
            ("L", False),
        ]
        assert report.failures == report.results

    def test_validation_is_idempotent(self):
        validator = new_validator(Option("show_successes", True))
        record = make_olio()

        first = validator.validate(record)
        second = validator.validate(record)

        assert first == second

    def test_rule_reading_later_field_is_idempotent(self):
        @dataclass
        class Order:
            B: int = field(metadata=tags(expr="A == null"))
            A: int = field(metadata=tags(expr="A > 0"))

        validator = new_validator()

        first = validator.validate(Order(1, 5))
        second = validator.validate(Order(1, 5))

        assert first.valid is True
        assert second == first

    def test_results_carry_rewritten_expression(self):
        validator = new_validator(Option("show_successes", True))

        report = validator.validate(Olio(M=3.14))

        (m_result,) = [r for r in report.results if r.name == "M"]
        assert m_result.expr == "M == 3.14"
        assert m_result.type_name == "float"
        assert m_result.value == 3.14

    @pytest.mark.parametrize("value", [0, 5, 6, 100])
    def test_shorthand_matches_full_form(self, value):
        @dataclass
        class Short:
            A: int = field(metadata=tags(expr=">5"))

        @dataclass
        class Full:
            A: int = field(metadata=tags(expr="A>5"))

        validator = new_validator(Option("show_successes", True))

        short = validator.validate(Short(value)).results[0]
        full = validator.validate(Full(value)).results[0]

        assert short.expr == "A >5"
        assert short.valid == full.valid == (value > 5)

    def test_untagged_values(self):
        @dataclass
        class Plain:
            Name: str
            DoGood: Any = None

        assert new_validator().validate(Plain("x")).valid is True
        assert new_validator().validate(42).valid is True
        assert new_validator().validate("text").valid is True
        assert new_validator().validate(None).valid is True


# =============================================================================
# Containers
# =============================================================================


@dataclass
class Other:
    Person: str
    Where: str


@dataclass
class MapTest:
    M: dict[str, int] = field(metadata=tags(expr="M['Jane'] == 5"))
    N: dict[str, Other] = field(metadata=tags(expr="N['Bob']['Where'] == 'Somewhere'"))


@dataclass(frozen=True)
class Key:
    Code: str = field(metadata=tags(regexp="^[A-Z]+$"))


class TestContainers:
    """Tests for sequences and mappings."""

    def test_maps(self):
        validator = new_validator(Option("show_successes", True))
        record = MapTest({"Jane": 5}, {"Bob": Other("Bob", "Somewhere")})

        assert correlate(validator.validate(record).results) == [("M", True), ("N", True)]

        record.N["Bob"] = Other("Bob", "Anywhere")
        assert correlate(validator.validate(record).results) == [("M", True), ("N", False)]

    def test_map_keys_before_values(self):
        validator = new_validator(Option("show_successes", True))

        report = validator.validate({Key("ab"): Invoice(9), Key("CD"): Invoice(1)})

        assert correlate(report.results) == [
            ("Code", False),
            ("Total", True),
            ("Code", True),
            ("Total", False),
        ]

    def test_sequences(self):
        report = new_validator().validate([Invoice(1), (Invoice(2),), {"x": [Invoice(9)]}])

        assert [r.value for r in report.results] == [1, 2]

    def test_shared_substructure_is_visited_per_path(self):
        shared = Invoice(1)

        report = new_validator().validate([shared, shared])

        assert len(report.results) == 2

    def test_cycle_raises(self):
        @dataclass
        class Tree:
            children: list = field(default_factory=list)

        root = Tree()
        root.children.append(root)

        with pytest.raises(CycleError):
            new_validator().validate(root)

    def test_cyclic_list_raises(self):
        items: list = []
        items.append(items)

        with pytest.raises(CycleError):
            new_validator().validate(items)


# =============================================================================
# References and proxies
# =============================================================================


@dataclass
class Holder:
    Ref: Another | None = field(default=None, metadata=tags(expr="Ref.Fred == 'x'"))


class TestReferences:
    """Tests for empty references, weak references and proxies."""

    def test_empty_reference_is_skipped(self):
        report = new_validator(Option("show_successes", True)).validate(Holder())

        assert report.valid is True
        assert report.results == []

    def test_reference_field_is_resolved(self):
        validator = new_validator(Option("show_successes", True))
        target = Another("x", "Plano, TX")

        report = validator.validate(Holder(weakref.ref(target)))

        assert correlate(report.results) == [("Ref", True), ("Fred", True), ("Location", True)]
        assert report.results[0].value is target

    def test_dead_reference_is_skipped(self):
        target = Another("x", "Nowhere")
        ref = weakref.ref(target)
        del target

        report = new_validator().validate(Holder(ref))

        assert report.results == []

    def test_reference_root(self):
        target = Invoice(4)

        report = new_validator().validate(weakref.ref(target))

        assert correlate(report.results) == [("Total", False)]

    def test_proxy_root(self):
        report = new_validator().validate(Proxy(Invoice(4)))

        assert correlate(report.results) == [("Total", False)]

    def test_proxy_field_is_unwrapped(self):
        report = new_validator().validate(Invoice(Proxy(3)))

        assert report.results[0].value == 3


# =============================================================================
# Serialization directives and private fields
# =============================================================================


class Account:
    def __init__(self, number: str | None = None):
        if number is None:
            raise ValueError("account number required")
        self.number = number

    def __str__(self) -> str:
        return self.number


@dataclass
class Ledger:
    Acct: Account = field(metadata=tags(regexp="^AC", json="acct,omitempty"))


@dataclass
class Directives:
    Hidden: str = field(default="", metadata=tags(expr="len(Hidden) > 3", json="-"))
    Named: str = field(default="", metadata=tags(expr="len(Named) > 3", json="-,"))
    Count: int = field(default=0, metadata=tags(expr="Count > 5", json="count,omitempty"))
    Inner: Another = field(
        default_factory=Another, metadata=tags(expr="Inner.Fred != ''", json="inner,omitempty")
    )


class TestSerializationSemantics:
    """Tests for the honor_serialization_semantics option."""

    def test_honored(self):
        report = new_validator().validate(Directives())

        assert correlate(report.results) == [("Named", False), ("Inner", False), ("Location", False)]

    def test_ignored(self):
        validator = new_validator(Option("honor_serialization_semantics", False))

        report = validator.validate(Directives())

        assert correlate(report.results) == [
            ("Hidden", False),
            ("Named", False),
            ("Count", False),
            ("Inner", False),
            ("Location", False),
        ]

    def test_omitempty_never_constructs_field_types(self):
        report = new_validator().validate(Ledger(Account("AC-1")))

        assert report.valid is True
        assert report.results == []

    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, True),
            (False, True),
            (0.0, True),
            (Decimal("0"), True),
            ("", True),
            (b"", True),
            ([], True),
            ({}, True),
            (deque(), True),
            (1, False),
            ("x", False),
            ([0], False),
            (Account("AC-1"), False),
            (object(), False),
        ],
    )
    def test_is_zero_value(self, value, expected):
        assert is_zero_value(value) is expected

    def test_private_fields_skipped_when_honored(self):
        @dataclass
        class Secretive:
            _secret: str = field(metadata=tags(expr="_secret == 'x'"))

        assert new_validator().validate(Secretive("y")).valid is True

    def test_private_field_contents_still_visited(self):
        @dataclass
        class Wrapper:
            _inner: Invoice

        report = new_validator().validate(Wrapper(Invoice(4)))

        assert correlate(report.results) == [("Total", False)]

    def test_private_field_needs_addressable_root(self):
        @dataclass
        class Secretive:
            _secret: str = field(metadata=tags(expr="_secret == 'x'"))

        validator = new_validator(Option("honor_serialization_semantics", False))

        with pytest.raises(AccessError) as exc_info:
            validator.validate(Secretive("y"))

        assert exc_info.value.field == "_secret"


class TestAddressable:
    """Tests for private-field access through addressable roots."""

    def test_privy(self):
        validator = new_validator(
            Option("honor_serialization_semantics", False),
            Option("show_successes", True),
        )
        privy = make_privy()

        with pytest.raises(AccessError):
            validator.validate(privy)

        with pytest.raises(AccessError):
            validator.validate_addressable(privy)

        report = validator.validate_addressable(addressable(privy))

        assert report.valid is True
        assert correlate(report.results) == [
            ("_name", True),
            ("_age", True),
            ("_things", True),
            ("_other", True),
            ("_iptr", True),
            ("_blah", True),
            ("_blah", True),
            ("_bval", True),
            ("_f", True),
            ("_g", True),
            ("_y", True),
        ]
        exprs = {r.name: r.expr for r in report.results}
        assert exprs["_bval"] == "!_bval"
        assert exprs["_y"] == "_y != 5"

    def test_addressable_does_not_mutate(self):
        validator = new_validator(Option("honor_serialization_semantics", False))
        privy = make_privy()

        validator.validate_addressable(addressable(privy))

        assert privy._things == (3, 4)
        assert privy._other == [Pair(300, 145)]
        assert privy._b == Noyb("ick", False, 45.1, 2)

    def test_addressable_public_fields(self):
        report = new_validator().validate_addressable(addressable(Invoice(4)))

        assert correlate(report.results) == [("Total", False)]


# =============================================================================
# Pydantic models
# =============================================================================


class PostalAddress(BaseModel):
    State: str = Field(json_schema_extra=tags(regexp="^[A-Z]{2}$"))


class Customer(BaseModel):
    Name: str = Field(json_schema_extra=tags(expr="len(Name) < 10"))
    Notes: str = Field("", exclude=True, json_schema_extra=tags(expr="len(Notes) > 100"))
    Address: PostalAddress
    _token: str = PrivateAttr(default="abc")


class TestPydantic:
    """Tests for pydantic models."""

    def test_model_fields(self):
        customer = Customer(Name="Bartholomew Jr", Address=PostalAddress(State="ARK"))

        report = new_validator().validate(customer)

        assert correlate(report.results) == [("Name", False), ("State", False)]
        assert report.results[0].type_name == "str"

    def test_excluded_field_when_not_honored(self):
        validator = new_validator(Option("honor_serialization_semantics", False))
        customer = Customer(Name="Bart", Address=PostalAddress(State="TX"))

        report = validator.validate(customer)

        assert correlate(report.results) == [("Notes", False)]

    def test_private_attributes_need_no_handle(self):
        validator = new_validator(Option("honor_serialization_semantics", False))
        customer = Customer(Name="Bart", Address=PostalAddress(State="TX"))

        assert validator.validate(customer).results == [
            Result("Notes", "", "str", "len(Notes) > 100", False)
        ]


# =============================================================================
# Errors
# =============================================================================


class TestErrors:
    """Tests for terminal errors."""

    def test_compile_error(self):
        @dataclass
        class BadEgg:
            Omelet: int = field(metadata=tags(expr="this omelet has no !*@&^% mushrooms"))

        with pytest.raises(ScriptError) as exc_info:
            new_validator().validate(BadEgg(1))

        assert exc_info.value.phase == "compile"
        assert exc_info.value.field == "Omelet"

    def test_execute_error(self):
        @dataclass
        class Divider:
            X: int = field(metadata=tags(expr="X / 0 > 1"))

        with pytest.raises(ScriptError) as exc_info:
            new_validator().validate(Divider(4))

        assert exc_info.value.phase == "execute"
        assert exc_info.value.expression == "X / 0 > 1"

    def test_pattern_error(self):
        @dataclass
        class BadPattern:
            S: str = field(metadata=tags(regexp="([a-z"))

        with pytest.raises(PatternError):
            new_validator().validate(BadPattern("abc"))

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError):
            new_validator(Option("bogus", True))

    def test_non_bool_option(self):
        with pytest.raises(ConfigurationError):
            new_validator(Option("show_successes", "yes"))


# =============================================================================
# Type mapping, caching and copies
# =============================================================================


class Channel:
    def __init__(self, maxsize: int):
        self.maxsize = maxsize


@dataclass
class ChanTest:
    Chan1: Channel = field(metadata=tags(expr="Chan1.cap == 8"))


@dataclass
class CopyTest:
    A: int = field(metadata=tags(expr="== 8"))
    B: str = field(metadata=tags(regexp="^hello$"))
    C: int = field(metadata=tags(expr="== 9"))
    D: str = field(metadata=tags(regexp="^goodbye$"))


class TestTypeMapping:
    """Tests for custom type mappers."""

    def test_custom_mapping(self):
        validator = new_validator(Option("show_successes", True))
        validator.add_type_mapping(Channel, lambda c: f'{{"cap": {c.maxsize}}}')

        report = validator.validate(ChanTest(Channel(8)))

        assert correlate(report.results) == [("Chan1", True)]
        assert isinstance(report.results[0].value, Channel)

    def test_unmapped_object(self):
        assert new_validator().validate(ChanTest(Channel(8))).valid is False

    @pytest.mark.parametrize("snippet", ["{{broken", "null", "1 / 0"])
    def test_mapping_error(self, snippet):
        validator = new_validator()
        validator.add_type_mapping(Channel, lambda c: snippet)

        with pytest.raises(MappingError) as exc_info:
            validator.validate(ChanTest(Channel(8)))

        assert exc_info.value.value_type is Channel

    def test_datetime_is_mapped_to_utc(self):
        validator = new_validator(Option("show_successes", True))
        when = datetime(2024, 5, 17, 12, 30, tzinfo=timezone(timedelta(hours=2)))

        report = validator.validate(Olio(N=when))

        assert validator.evaluator.runtime.get("N") == when
        assert validator.evaluator.runtime.get("N").tzinfo == timezone.utc
        (n_result,) = [r for r in report.results if r.name == "N"]
        assert n_result.valid is True
        assert n_result.value is when


class TestCaching:
    """Tests for script and pattern caches."""

    def test_identical_rule_text_compiles_once(self, monkeypatch):
        @dataclass
        class Inner:
            A: int = field(metadata=tags(expr="A>5"))

        @dataclass
        class Outer:
            A: int = field(metadata=tags(expr="A>5"))
            inner: Inner = field(default_factory=lambda: Inner(7))

        compiled = []
        original = Runtime.compile

        def counting_compile(self, source):
            compiled.append(source)
            return original(self, source)

        monkeypatch.setattr(Runtime, "compile", counting_compile)
        validator = new_validator(Option("show_successes", True))

        report = validator.validate(Outer(6))
        validator.validate(Outer(2))

        assert correlate(report.results) == [("A", True), ("A", True)]
        assert compiled == ["A>5"]
        assert list(validator.evaluator.scripts) == ["A>5"]

    def test_patterns_are_cached(self):
        validator = new_validator()

        validator.validate([Olio(C="x"), Olio(C="y")])

        assert list(validator.matcher.patterns) == ["^[aeiou]{4}$|hello"]


class TestCopy:
    """Tests for Validator.copy."""

    def test_copy(self):
        validator = new_validator(Option("show_successes", True))
        validator.add_type_mapping(Channel, lambda c: f'{{"cap": {c.maxsize}}}')
        record = CopyTest(8, "hello", 10, "adios")
        expected = [("A", True), ("B", True), ("C", False), ("D", False)]

        assert correlate(validator.validate(record).results) == expected

        clone = validator.copy()

        assert clone.options == validator.options
        assert clone.evaluator.scripts == {}
        assert clone.matcher.patterns == {}
        assert clone.evaluator.runtime is not validator.evaluator.runtime
        assert clone.evaluator.type_mappers == validator.evaluator.type_mappers
        assert correlate(clone.validate(record).results) == expected
        assert correlate(clone.validate(ChanTest(Channel(8))).results) == [("Chan1", True)]

    def test_copy_is_independent(self):
        validator = Validator()
        clone = validator.copy()

        clone.add_type_mapping(Channel, lambda c: "1")

        assert Channel not in validator.evaluator.type_mappers
