import pytest

from kx.lib.errors import (
    EmptyFragmentListError,
    InvalidFragmentError,
    InvalidImageReferenceError,
    KxError,
    MissingRequiredFieldError,
    PodBuilderFinalizedError,
)


@pytest.mark.parametrize(
    "error",
    [
        InvalidImageReferenceError("foo:"),
        MissingRequiredFieldError("pod"),
        InvalidFragmentError("bad fragment"),
        EmptyFragmentListError(),
        PodBuilderFinalizedError("done"),
    ],
)
def test_errors_share_a_base_class(error):
    assert isinstance(error, KxError)


def test_missing_required_field_message():
    error = MissingRequiredFieldError("containers", "PodBuilder")
    assert error.field_name == "containers"
    assert error.owner == "PodBuilder"
    assert str(error) == "Missing required field 'containers' for PodBuilder"
    assert str(MissingRequiredFieldError("pod")) == "Missing required field 'pod'"


def test_invalid_image_reference_keeps_the_image():
    error = InvalidImageReferenceError(":latest")
    assert error.image == ":latest"
    assert "':latest'" in str(error)


def test_finalized_error_is_a_runtime_error():
    assert issubclass(PodBuilderFinalizedError, RuntimeError)
    assert issubclass(EmptyFragmentListError, ValueError)
