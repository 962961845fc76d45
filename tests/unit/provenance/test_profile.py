import pytest

from kinnex.provenance import profile


@pytest.mark.parametrize("seconds,expected", [(0, "0h00m00s"), (59.6, "0h01m00s"),
                                              (3725, "1h02m05s")])
def test_format_elapsed(seconds, expected):
    assert profile._format_elapsed(seconds) == expected


def test_report_propagates_errors():
    with pytest.raises(ValueError):
        with profile.report("Lima"):
            raise ValueError("failed")
