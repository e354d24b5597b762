import base64
import os
from io import BytesIO
from types import SimpleNamespace

from PIL import Image

from soulsketch.schemas import normalize_quiz
from soulsketch.services.portrait import (MAX_PROMPT_CHARS, OpenAIImageModel, PortraitGenerator,
                                          build_portrait_generator, build_prompt)


class FakeImages:
    def __init__(self, payload=None, error=None):
        self.payload, self.error = payload, error
        self.images = SimpleNamespace(generate=self.generate)

    def generate(self, **kwargs):
        if self.error:
            raise self.error
        return SimpleNamespace(data=[SimpleNamespace(b64_json=self.payload, url=None)])


class Broken:
    method = "openai"

    def render(self, prompt, quiz=None):
        raise RuntimeError("content policy")


def _png_b64(colour=(10, 120, 200)):
    buf = BytesIO()
    Image.new("RGB", (1024, 1024), colour).save(buf, "PNG")
    return base64.b64encode(buf.getvalue()).decode()


def _assert_variants(result):
    assert os.path.getsize(result.file_path) > 0 and os.path.getsize(result.share_path) > 0
    with Image.open(result.file_path) as im:
        assert im.size == (1024, 1024)
    with Image.open(result.share_path) as im:
        assert im.size == (1080, 1920)


def test_no_key_draws_placeholder(settings, quiz_answers):
    gen = build_portrait_generator(settings)
    result = gen.generate(normalize_quiz(quiz_answers))
    assert result.method == "placeholder" and result.success
    assert os.path.dirname(result.file_path) == settings.UPLOAD_DIR
    _assert_variants(result)


def test_failed_generation_still_writes_both_files(tmp_path):
    gen = PortraitGenerator(str(tmp_path), model=Broken())
    result = gen.generate(normalize_quiz({}))
    assert result.method == "fallback" and not result.success
    assert "content policy" in result.error
    _assert_variants(result)


def test_live_image_from_b64(tmp_path, quiz_answers):
    model = OpenAIImageModel("sk-test", "dall-e-3", client=FakeImages(payload=_png_b64()))
    result = PortraitGenerator(str(tmp_path), model=model).generate(normalize_quiz(quiz_answers), "modern", ["aura"])
    assert result.method == "openai" and result.success
    _assert_variants(result)
    with Image.open(result.file_path) as im:
        assert all(abs(a - b) <= 2 for a, b in zip(im.getpixel((512, 512)), (10, 120, 200)))


def test_each_generation_gets_new_filenames(tmp_path):
    gen = PortraitGenerator(str(tmp_path))
    a, b = gen.generate(normalize_quiz({})), gen.generate(normalize_quiz({}))
    assert a.file_path != b.file_path and a.share_path != b.share_path


def test_prompt_reflects_quiz(quiz_answers):
    quiz = normalize_quiz(quiz_answers)
    prompt = build_prompt(quiz, "ethereal", ["aura", "past_life"])
    assert "an attractive female adult" in prompt
    assert "heart-shaped face" in prompt
    assert "calm, thoughtful presence" in prompt
    assert "nurturing, gentle energy" in prompt
    assert "rim lighting in rose gold" in prompt
    assert "Timeless quality" in prompt and "Twin flame" not in prompt
    assert "ETHEREAL REALISTIC STYLE" in prompt
    assert "AVOID:" in prompt and len(prompt) <= MAX_PROMPT_CHARS


def test_unknown_style_is_realistic_and_anime_not_avoided():
    quiz = normalize_quiz({})
    assert "PHOTOGRAPHIC STYLE" in build_prompt(quiz, "cubist", [])
    anime = build_prompt(quiz, "anime", [])
    assert "ANIME STYLE" in anime
    assert "anime" not in anime.split("AVOID:")[1]
