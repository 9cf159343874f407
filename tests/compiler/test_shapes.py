"""Tests for the method shape grammar."""

from __future__ import annotations

import re
from dataclasses import replace

import pytest

from servicegen.compiler.shapes import (
    CANCELLATION_TOKEN_TYPE,
    ShapeError,
    extract_result_type,
    split_type_arguments,
    validate_method,
)
from servicegen.declarations import OTHER_FORM, TypeReference
from tests._fixtures.declarations import awaitable, method, param, ref, token


def test_data_and_cancellation_parameters_are_extracted() -> None:
    shape = validate_method(
        method(
            "SayHelloAsync",
            param("name", ref("app.models.NameModel")),
            token(),
            returns=awaitable("app.models.NameModel"),
        )
    )

    assert shape.result_type == "app.models.NameModel"
    assert shape.data_parameter_name == "name"
    assert shape.data_parameter_type == "app.models.NameModel"
    assert shape.cancellation_parameter_name == "ct"
    assert shape.cancellation_parameter_type == CANCELLATION_TOKEN_TYPE
    assert "app.models" in shape.modules


def test_cancellation_only_method_has_no_data_parameter() -> None:
    shape = validate_method(method("PingAsync", token("cancel")))

    assert shape.result_type is None
    assert shape.data_parameter_name is None
    assert shape.data_parameter_type is None
    assert shape.cancellation_parameter_name == "cancel"


def test_generic_data_parameter_is_accepted() -> None:
    data = ref("list[str]", text="list[str]", form="generic")
    shape = validate_method(method("Bulk", param("names", data), token()))

    assert shape.data_parameter_type == "list[str]"


@pytest.mark.parametrize("count", [0, 3])
def test_parameter_count_outside_range_is_rejected(count: int) -> None:
    parameters = [param(f"p{index}", ref("str")) for index in range(count - 1)]
    if count:
        parameters.append(token())

    with pytest.raises(ShapeError) as excinfo:
        validate_method(method("Broken", *parameters))

    assert str(excinfo.value) == f"Externally exposed method must have 1 or 2 parameters, it had {count}."


def test_plain_string_cancellation_parameter_names_actual_type() -> None:
    with pytest.raises(ShapeError) as excinfo:
        validate_method(method("Broken", param("name", ref("str")), param("ct", ref("str"))))

    assert str(excinfo.value) == "Cancellation parameter must be a CancellationToken, it was str."


def test_unannotated_cancellation_parameter_is_rejected() -> None:
    with pytest.raises(ShapeError, match="Cancellation parameter must be a simple type"):
        validate_method(method("Broken", param("ct", None)))


def test_data_parameter_must_be_simple_or_generic() -> None:
    union = TypeReference(text="int | str", qualified_name="int | str", form=OTHER_FORM)

    expected = "Data parameter must be a simple type, or generic, it was int | str."
    with pytest.raises(ShapeError, match=re.escape(expected)):
        validate_method(method("Broken", param("value", union), token()))


def test_unresolved_data_parameter_is_rejected() -> None:
    with pytest.raises(ShapeError, match="it was Missing"):
        validate_method(method("Broken", param("value", ref(None, text="Missing")), token()))


def test_non_awaitable_return_is_rejected_before_parameters() -> None:
    with pytest.raises(ShapeError) as excinfo:
        validate_method(method("Sync", returns=ref("str")))

    assert "must be an awaitable" in str(excinfo.value)
    assert str(excinfo.value).endswith("it was str.")


def test_missing_return_is_rejected() -> None:
    declaration = replace(method("Sync", token()), return_type=None)

    with pytest.raises(ShapeError, match="it was nothing."):
        extract_result_type(declaration)


@pytest.mark.parametrize("result", ["None", "NoneType"])
def test_awaitable_of_none_is_void(result: str) -> None:
    assert extract_result_type(method("Ping", token(), returns=awaitable(result))) is None


def test_awaitable_with_two_results_is_rejected() -> None:
    with pytest.raises(ShapeError):
        extract_result_type(method("Pair", token(), returns=awaitable("int, str")))


def test_split_type_arguments_respects_nesting() -> None:
    assert split_type_arguments("dict[str, int], list[str]") == ["dict[str, int]", "list[str]"]
    assert split_type_arguments("int") == ["int"]
