"""
Soulmate portrait generation.

The prompt is assembled from plain lookup tables over the quiz answers, sent
once to the hosted image model, and the returned picture is cropped into a
square portrait and a 9:16 story variant. Any failure, including a missing
API key, falls back to a branded placeholder so the pipeline always has an
image to work with.
"""
import base64
import logging
import os
import time
import uuid
from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional

from PIL import Image, ImageDraw, ImageFont, ImageOps

from soulsketch.config import Settings
from soulsketch.schemas import Appearance, Personality, Preferences, QuizAnswers

logger = logging.getLogger(__name__)

PORTRAIT_SIZE = (1024, 1024)
STORY_SIZE = (1080, 1920)
MAX_PROMPT_CHARS = 4000

GENDERS = {
    "men": "an attractive male adult",
    "male": "an attractive male adult",
    "women": "an attractive female adult",
    "female": "an attractive female adult",
    "both": "an attractive adult person",
    "non-binary": "an attractive non-binary adult",
    "all": "an attractive adult person",
}

AGES = {
    "18-25": " appearing to be in their early twenties",
    "25-35": " appearing to be in their late twenties to early thirties",
    "35-45": " appearing to be in their thirties to early forties",
    "45-55": " appearing to be in their forties to early fifties",
    "55+": " appearing to be in their mature years with distinguished features",
}

FACE_SHAPES = {
    "oval": "oval face shape with balanced, harmonious proportions",
    "round": "round, soft face shape with gentle, welcoming curves",
    "square": "strong, defined jawline with confident square face shape",
    "heart": "heart-shaped face with elegant, defined cheekbones",
    "long": "elongated, refined face shape with distinguished features",
    "diamond": "diamond face shape with striking, prominent cheekbones",
}

CULTURES = {
    "European": "with refined European aesthetic and classical features",
    "Asian": "with elegant Asian features and graceful beauty",
    "Latin": "with warm Latin heritage and expressive features",
    "African": "with stunning African features and radiant beauty",
    "Middle Eastern": "with striking Middle Eastern features",
    "Mixed": "with beautiful mixed heritage combining multiple cultural aesthetics",
    "Other": "with unique cultural beauty and distinctive features",
}

ZODIAC_ENERGY = {
    "aries": "confident, dynamic presence with hint of fiery warmth in their aura",
    "taurus": "grounded, sensual energy with natural, earthy beauty",
    "gemini": "bright, intellectual sparkle with quick, engaging expression",
    "cancer": "nurturing, gentle energy with soft, caring eyes",
    "leo": "radiant, magnetic presence with natural charisma and warmth",
    "virgo": "refined, elegant energy with precise, thoughtful features",
    "libra": "harmonious energy with naturally balanced, aesthetic features",
    "scorpio": "intense, magnetic energy with deep, mysterious eyes",
    "sagittarius": "optimistic, free-spirited energy with bright, adventurous expression",
    "capricorn": "dignified, ambitious energy with strong, determined features",
    "aquarius": "unique, innovative energy with distinctive, original beauty",
    "pisces": "dreamy, intuitive energy with soft, ethereal, compassionate expression",
}

STYLES = {
    "realistic": ("PHOTOGRAPHIC STYLE:\n- Ultra-realistic portrait photography with natural lighting\n"
                  "- 85mm portrait lens aesthetic with beautiful bokeh\n- Natural color grading with warm, inviting tones"),
    "ethereal": ("ETHEREAL REALISTIC STYLE:\n- Realistic portrait with subtle, dreamy enhancement\n"
                 "- Soft, angelic lighting with gentle rim light\n- Warm, celestial color palette"),
    "artistic": ("ARTISTIC REALISTIC STYLE:\n- Photorealistic with subtle artistic enhancement\n"
                 "- Creative lighting with artistic shadows and highlights\n- Rich, sophisticated color grading"),
    "modern": ("MODERN REALISTIC STYLE:\n- Contemporary portrait photography style\n"
               "- Clean, modern lighting setup\n- Crisp, clean color grading"),
    "mystical": ("MYSTICAL STYLE:\n- Realistic portrait bathed in soft twilight and candle glow\n"
                 "- Faint starlight bokeh in the background\n- Deep violet and gold color palette"),
    "anime": ("ANIME STYLE:\n- Clean hand-drawn anime illustration of a single adult\n"
              "- Soft cel shading and expressive eyes\n- Pastel color palette"),
}

AVOID = ["cartoon styles", "anime", "plastic appearance", "heavy digital effects", "inappropriate content",
         "minors", "exaggerated features", "fantasy elements", "text overlays", "watermarks",
         "multiple people", "hands in frame", "overly dramatic lighting", "artificial backgrounds"]


def _known(value: Optional[str]) -> bool:
    return bool(value) and value != "any"


def appearance_details(a: Appearance) -> str:
    if a.is_empty():
        return "Natural, attractive features with warm, approachable appearance and friendly demeanor"
    details = []
    if a.face_shape:
        details.append(FACE_SHAPES.get(a.face_shape, f"{a.face_shape} face shape"))
    hair = [v for v in (a.hair_length, a.hair_texture, a.hair_color) if _known(v)]
    if hair:
        details.append(f"{', '.join(hair)} hair with natural movement and healthy shine")
    eyes = [v for v in (a.eye_color, a.eye_shape) if _known(v)]
    if eyes:
        details.append(f"{', '.join(eyes)} eyes with natural warmth and expressive depth")
    if _known(a.skin_tone):
        details.append(f"{a.skin_tone} skin tone with healthy, natural radiance")
    if a.facial_hair and a.facial_hair != "none":
        details.append(f"well-groomed {a.facial_hair} facial hair")
    if a.freckles and a.freckles != "none":
        details.append(f"natural {a.freckles} freckles adding character and charm")
    if a.apparent_age:
        details.append(f"appears {a.apparent_age}")
    return "; ".join(details) or "Natural, attractive features with warm, approachable appearance"


def personality_expression(p: Personality) -> str:
    if p.introvert_extrovert < 30:
        energy = "vibrant, outgoing energy with animated, engaging expression"
    elif p.introvert_extrovert > 70:
        energy = "calm, thoughtful presence with serene, contemplative expression"
    else:
        energy = "balanced, warm energy with approachable, friendly expression"
    if p.grounded_adventurous < 30:
        spirit = "adventurous, dynamic spirit visible in bright, excited eyes"
    elif p.grounded_adventurous > 70:
        spirit = "grounded, stable presence with reassuring, steady gaze"
    else:
        spirit = "harmonious balance of excitement and stability in their expression"
    if p.analytical_creative < 30:
        mind = "creative, artistic soul with dreamy, imaginative look"
    elif p.analytical_creative > 70:
        mind = "intelligent, thoughtful nature with clear, focused eyes"
    else:
        mind = "creative intelligence with both wisdom and imagination in their gaze"
    return ", ".join([energy, spirit, mind])


def lighting(p: Personality, prefs: Preferences) -> str:
    if p.introvert_extrovert < 30:
        out = "- Lighting: Bright, vibrant lighting with energetic, uplifting quality"
    elif p.introvert_extrovert > 70:
        out = "- Lighting: Soft, intimate lighting with warm, cozy atmosphere"
    else:
        out = "- Lighting: Soft, flattering key light with gentle fill lighting"
    if prefs.aura_palette:
        out += f"\n- Color temperature: Warm tones with subtle {prefs.aura_palette} color influence"
    return out


def scene(p: Personality, prefs: Preferences) -> str:
    if p.introvert_extrovert > 60:
        out = "Intimate, cozy setting with soft, warm background suggesting comfort and security"
    elif p.introvert_extrovert < 40:
        out = "Bright, open background with natural light suggesting openness and social energy"
    else:
        out = "Clean, professional background with subtle depth and warmth"
    if prefs.aura_palette:
        out += f", with subtle {prefs.aura_palette} color harmonies in the background"
    return out


def addon_effects(addons: List[str], prefs: Preferences) -> str:
    effects = []
    if "aura" in addons:
        effects.append(f"- Subtle aura effect: gentle, realistic rim lighting in {prefs.aura_palette or 'warm golden'} "
                       "tones around the subject")
    if "twin_flame" in addons:
        effects.append("- Twin flame energy: subtle dual-light effect or mirrored highlight suggesting spiritual connection")
    if "past_life" in addons:
        effects.append("- Timeless quality: classical, vintage-inspired lighting that suggests depth and history")
    return "\n".join(effects)


def build_prompt(quiz: QuizAnswers, style: str, addons: List[str]) -> str:
    user, p, prefs = quiz.user, quiz.personality, quiz.preferences
    style = style if style in STYLES else "realistic"
    gender = GENDERS.get(user.attracted_to, "an attractive adult person")
    age = AGES.get(user.age_range or "", "")
    culture = CULTURES.get(quiz.appearance.cultural_resonance or "",
                           f"with {quiz.appearance.cultural_resonance} cultural aesthetic" if quiz.appearance.cultural_resonance else "")
    zodiac = ZODIAC_ENERGY.get((quiz.birth.zodiac or "").lower(), "")
    avoid = [a for a in AVOID if not (style == "anime" and a in ("cartoon styles", "anime"))]
    quality = ("- Clean illustration of a single adult, tasteful and proportionate" if style == "anime"
               else "- Photorealistic quality only - no cartoon, anime, or illustration styles")

    parts = [
        f"Create a portrait of {gender}{age} as the viewer's ideal soulmate.",
        "",
        "APPEARANCE SPECIFICATIONS:",
        appearance_details(quiz.appearance),
        culture,
        "",
        "PERSONALITY EXPRESSION:",
        personality_expression(p),
        zodiac,
        "",
        "SCENE & COMPOSITION:",
        scene(p, prefs),
        "- Portrait framing: headshot to upper chest, slight 3/4 view",
        lighting(p, prefs),
        "",
        STYLES[style],
        addon_effects(addons, prefs),
        "",
        "STRICT REQUIREMENTS:",
        quality,
        "- One adult subject only, tasteful presentation focused on face and personality",
        "- No text, watermarks, signatures, or graphic overlays",
        "- Anatomically correct and proportionate",
        "",
        f"AVOID: {', '.join(avoid)}.",
    ]
    prompt = "\n".join(line for line in parts if line is not None)
    return prompt[:MAX_PROMPT_CHARS]


@dataclass
class PortraitResult:
    file_path: str
    share_path: str
    method: str
    success: bool = True
    error: Optional[str] = None


class PlaceholderImageModel:
    """Draws the branded 'portrait coming soon' card."""

    method = "placeholder"

    def render(self, prompt: str, quiz: Optional[QuizAnswers] = None) -> Image.Image:
        w, h = PORTRAIT_SIZE
        top, bottom = (252, 228, 236), (225, 190, 231)
        img = Image.new("RGB", (w, h))
        draw = ImageDraw.Draw(img)
        for y in range(h):
            t = y / (h - 1)
            draw.line([(0, y), (w, y)], fill=tuple(int(a + (b - a) * t) for a, b in zip(top, bottom)))

        overlay = Image.new("RGBA", (w, h), (0, 0, 0, 0))
        od = ImageDraw.Draw(overlay)
        for cx, cy, r, colour in ((200, 200, 100, (233, 30, 99, 26)), (800, 300, 80, (156, 39, 176, 26)),
                                  (300, 800, 120, (233, 30, 99, 20)), (512, 400, 150, (255, 255, 255, 77))):
            od.ellipse([cx - r, cy - r, cx + r, cy + r], fill=colour)
        img = Image.alpha_composite(img.convert("RGBA"), overlay).convert("RGB")

        draw = ImageDraw.Draw(img)
        attracted = quiz.user.attracted_to if quiz else "any"
        title = {"men": "Your Soulmate (Male)", "male": "Your Soulmate (Male)",
                 "women": "Your Soulmate (Female)", "female": "Your Soulmate (Female)"}.get(attracted, "Your Soulmate")
        for text, size, colour, y in ((title, 48, (45, 34, 64), 460), ("Portrait", 32, (233, 30, 99), 532),
                                      ("AI-Generated Image Coming Soon", 16, (102, 102, 102), 614)):
            font = ImageFont.load_default(size=size)
            left, top_, right, bottom_ = draw.textbbox((0, 0), text, font=font)
            draw.text(((w - (right - left)) / 2, y - (bottom_ - top_) / 2), text, font=font, fill=colour)
        draw.arc([200, 850, 824, 950], start=200, end=340, fill=(233, 30, 99), width=3)
        return img


class OpenAIImageModel:
    method = "openai"

    def __init__(self, api_key: str, model: str, client=None):
        if client is None:
            from openai import OpenAI
            client = OpenAI(api_key=api_key)
        self.client = client
        self.model = model

    def render(self, prompt: str, quiz: Optional[QuizAnswers] = None) -> Image.Image:
        resp = self.client.images.generate(model=self.model, prompt=prompt, size="1024x1024",
                                           quality="hd", style="natural", response_format="b64_json", n=1)
        item = resp.data[0]
        b64 = getattr(item, "b64_json", None)
        if b64:
            raw = base64.b64decode(b64)
        elif getattr(item, "url", None):
            import httpx
            r = httpx.get(item.url, timeout=60.0)
            r.raise_for_status()
            raw = r.content
        else:
            raise RuntimeError("images.generate returned neither b64_json nor url")
        img = Image.open(BytesIO(raw))
        img.load()
        return img.convert("RGB")


class PortraitGenerator:
    def __init__(self, upload_dir: str, model=None):
        self.upload_dir = upload_dir
        self.placeholder = PlaceholderImageModel()
        self.model = model or self.placeholder

    def generate(self, quiz: QuizAnswers, style: Optional[str] = None, addons: Optional[List[str]] = None) -> PortraitResult:
        addons = addons or []
        prompt = build_prompt(quiz, style or quiz.style, addons)
        logger.info("Portrait prompt built (%d chars) via %s", len(prompt), self.model.method)
        try:
            img = self.model.render(prompt, quiz)
            method, success, error = self.model.method, True, None
        except Exception as e:
            logger.warning("Portrait generation failed, drawing placeholder: %s", e)
            img = self.placeholder.render(prompt, quiz)
            method, success, error = "fallback", False, str(e)
        file_path, share_path = self._save_variants(img)
        return PortraitResult(file_path=file_path, share_path=share_path, method=method, success=success, error=error)

    def _save_variants(self, img: Image.Image):
        os.makedirs(self.upload_dir, exist_ok=True)
        stem = f"soulmate_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"
        file_path = os.path.join(self.upload_dir, f"{stem}.png")
        share_path = os.path.join(self.upload_dir, f"{stem}_story.png")
        ImageOps.fit(img, PORTRAIT_SIZE, Image.LANCZOS, centering=(0.5, 0.5)).save(file_path, "PNG", compress_level=6)
        ImageOps.fit(img, STORY_SIZE, Image.LANCZOS, centering=(0.5, 0.5)).save(share_path, "PNG", compress_level=7)
        logger.info("Images saved: %s, %s", os.path.basename(file_path), os.path.basename(share_path))
        return file_path, share_path


def build_portrait_generator(settings: Settings) -> PortraitGenerator:
    model = None
    if settings.OPENAI_API_KEY:
        model = OpenAIImageModel(settings.OPENAI_API_KEY, settings.OPENAI_IMAGE_MODEL)
    else:
        logger.warning("OPENAI_API_KEY not set; portraits use the placeholder")
    return PortraitGenerator(settings.UPLOAD_DIR, model=model)
