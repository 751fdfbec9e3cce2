import os
import sys

import pytest

# Ensure the repository's src/ is importable
sys.path.insert(0, os.path.abspath("src"))

from scheduling_intake.domain.errors import InputError
from scheduling_intake.domain.models import ImageInput, OcrResult, TextInput, WordConfidence
from scheduling_intake.domain.normalize import average_confidence, normalize


@pytest.mark.parametrize("content", ["", " ", "\n\t  ", "   \r\n"])
def test_blank_text_is_rejected(content):
    with pytest.raises(InputError):
        normalize(TextInput(content))


def test_missing_input_is_rejected():
    with pytest.raises(InputError):
        normalize(None)


def test_text_is_stripped_and_has_no_confidence():
    out = normalize(TextInput("  Let's meet next Tuesday at 3pm \n"))
    assert out.text == "Let's meet next Tuesday at 3pm"
    assert out.words == []
    assert out.average_confidence == 0.0


def test_average_confidence_is_mean_of_words():
    words = [WordConfidence("a", 80.0), WordConfidence("b", 60.0)]
    assert average_confidence(words) == 70
    assert average_confidence([]) == 0


def test_image_input_uses_reader_and_averages_confidence():
    seen = {}

    def reader(data):
        seen["data"] = data
        return OcrResult(
            text="Dentist Friday 10am\n",
            words=[WordConfidence("Dentist", 90.0), WordConfidence("Friday", 70.0), WordConfidence("10am", 80.0)],
        )

    out = normalize(ImageInput(b"png-bytes"), reader=reader)
    assert seen["data"] == b"png-bytes"
    assert out.text == "Dentist Friday 10am"
    assert out.average_confidence == pytest.approx(80.0)
    assert [w.token for w in out.words] == ["Dentist", "Friday", "10am"]


def test_image_without_words_is_rejected():
    calls = {"n": 0}

    def reader(_data):
        calls["n"] += 1
        return OcrResult(text="", words=[])

    with pytest.raises(InputError, match="No extractable text"):
        normalize(ImageInput(b"blank"), reader=reader)
    assert calls["n"] == 1


def test_empty_image_bytes_are_rejected_before_ocr():
    def reader(_data):
        raise AssertionError("reader must not be called")

    with pytest.raises(InputError):
        normalize(ImageInput(b""), reader=reader)
