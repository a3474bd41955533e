import pytest

from dispatcher.comparator import compare, normalize


@pytest.mark.parametrize(
    "actual, expected, excepted",
    [
        # exactly the same
        ("[0,1]", "[0,1]", True),
        # surrounding whitespace
        ("  [0,1]\n", "[0,1]", True),
        # redundant new line at the end
        ("aaa\nbbb\n\n", "aaa\nbbb", True),
        # inner whitespace is significant
        ("[0, 1]", "[0,1]", False),
        # redundant new line in the middle
        ("aaa\n\nbbb", "aaa\nbbb", False),
        # no numeric tolerance
        ("0.30000000000000004", "0.3", False),
        # empty string
        ("", "", True),
        # missing output
        (None, "", True),
        (None, "0", False),
        # empty character
        ("\t\r\n", "", True),
    ],
)
def test_compare(actual, expected, excepted):
    assert compare(actual, expected) is excepted


def test_normalize():
    assert normalize(None) == ""
    assert normalize("\n ok \n") == "ok"
