import json
import logging
from typing import List

from soulsketch.config import Settings
from soulsketch.schemas import Personality, QuizAnswers
from soulsketch.services import astro
from soulsketch.services.payments import tier_level

logger = logging.getLogger(__name__)

MIN_PROFILE_CHARS = 100

SYSTEM_PROMPT = ("You are a world-class astrologer, numerologist, and relationship advisor. "
                 "Create deeply personalized, spiritually insightful soulmate reports that feel like they were "
                 "written by someone who truly knows this person. Use their birth data, personality traits, and "
                 "preferences. Write each section heading alone on its own line, exactly as given, with no markdown.")

FALLBACK_PROFILE_TEXT = """Overview
Your soulmate carries an energy that complements your own: steady where you are restless, curious where you are certain. The connection you are moving toward is built on recognition rather than chance.

Personality & Vibe
They are warm, grounded and quietly confident, with a playful streak that shows once they feel safe. Friends describe them as the person who remembers the small details.

Attachment Style & Love Languages
They attach securely and say what they mean. Quality Time and Words of Affirmation come naturally to them, and they notice when you need either.

First Meeting Scenario
You are likely to meet in a relaxed setting through a shared interest or a mutual friend. The conversation will feel easy from the first minute.

What They're Looking For Now
They want a partnership with depth, honesty and room for both of you to grow, and they are ready for it.

Numerology/Astro Notes
Your cosmic signature favours complementary earth or water energy, a pairing that brings balance to both life paths."""


def personality_profile(p: Personality) -> str:
    profile = []
    if p.introvert_extrovert < 30:
        profile.append("highly extroverted, energized by social connection")
    elif p.introvert_extrovert > 70:
        profile.append("introverted, values deep one-on-one intimacy")
    else:
        profile.append("ambivert, enjoys both social time and quiet moments")
    if p.grounded_adventurous < 30:
        profile.append("adventurous spirit, seeks exciting experiences")
    elif p.grounded_adventurous > 70:
        profile.append("grounded nature, appreciates stability and routine")
    else:
        profile.append("balanced approach to adventure and stability")
    if p.analytical_creative < 30:
        profile.append("creative, intuitive decision-making style")
    elif p.analytical_creative > 70:
        profile.append("analytical, logical approach to relationships")
    else:
        profile.append("balanced blend of logic and creativity")
    if p.values:
        profile.append(f"deeply values: {', '.join(p.values[:3])}")
    return "; ".join(profile)


LOVE_LANGUAGES = [("Words of Affirmation", "words"), ("Quality Time", "qualityTime"),
                  ("Receiving Gifts", "gifts"), ("Acts of Service", "acts"), ("Physical Touch", "touch")]


def love_language_priority(scores: dict) -> str:
    if not scores:
        return "Quality Time and Words of Affirmation"
    def score(key):
        v = scores.get(key, 0)
        return v if isinstance(v, (int, float)) else 0
    ranked = sorted(LOVE_LANGUAGES, key=lambda pair: score(pair[1]), reverse=True)
    return " and ".join(name for name, _ in ranked[:2])


def build_prompt(quiz: QuizAnswers, tier: str, addons: List[str]) -> str:
    user, birth, p, rel = quiz.user, quiz.birth, quiz.personality, quiz.relationship
    life_path = astro.life_path_number(birth.date)
    loves = love_language_priority(p.love_languages)
    level = tier_level(tier)

    lines = ["Create a deeply personalized soulmate profile for this person.", ""]
    if life_path:
        lines += ["NUMEROLOGY FOUNDATION:",
                  f"- Life Path Number: {life_path} - {astro.life_path_insight(life_path)}", ""]
    if birth.zodiac:
        lines += ["ASTROLOGICAL ESSENCE:",
                  f"- Sun Sign: {birth.zodiac} - {astro.zodiac_traits(birth.zodiac)}",
                  f"- Natural Compatibility: {astro.zodiac_compatibility(birth.zodiac)}",
                  f"- Birth Date: {birth.date or 'Not provided'}",
                  f"- Birth Time: {birth.time or 'Unknown'}",
                  f"- Birth Location: {birth.city or 'Unknown'}", ""]
    lines += ["PERSONALITY MATRIX:",
              f"- {personality_profile(p)}",
              f"- Love Languages Priority: {loves}",
              f"- Core Values: {', '.join(p.values) or 'Connection, growth, authenticity'}",
              f"- Relationship Must-Haves: {', '.join(rel.must_haves) or 'Understanding, respect, shared growth'}",
              f"- Deal-Breakers: {rel.deal_breakers or 'Dishonesty, lack of emotional availability'}",
              f"- Seeking: {rel.looking_for or 'Deep, meaningful connection'}",
              "",
              "PERSONAL PREFERENCES:",
              f"- Age Range: {user.age_range or 'Open'}",
              f"- Location: {user.country or 'Global'}{f' ({user.timezone})' if user.timezone else ''}",
              f"- Cultural Resonance: {quiz.appearance.cultural_resonance or 'Universal connection'}",
              f"- Attracted To: {user.attracted_to}",
              "",
              "CREATE SECTIONS (use these exact headings, each alone on its own line):",
              "Overview",
              "  - Open with their numerological signature and astrological essence",
              "Personality & Vibe",
              f"  - Introvert/extrovert score {p.introvert_extrovert}/100, grounded/adventurous "
              f"{p.grounded_adventurous}/100, analytical/creative {p.analytical_creative}/100",
              "Attachment Style & Love Languages",
              f"  - Focus on their top love languages: {loves}",
              "First Meeting Scenario",
              "  - A vivid scene based on their personality, location and cultural context",
              "What They're Looking For Now",
              f"  - Their stated desires: {rel.looking_for or 'meaningful connection'}",
              "Numerology/Astro Notes",
              "  - Compatibility using their birth numbers and current planetary influences"]
    if level >= 1:
        lines += ["Location Insights",
                  f"  - How their location ({user.country or 'unknown'}) shapes where their soulmate may be found",
                  "Enhanced Astrological Analysis",
                  "  - Venus and Mars placements, 7th house themes, current transits"]
    if level >= 2:
        lines += ["Full Astrological AI Analysis",
                  "  - Natal chart interpretation for love, synastry patterns to look for",
                  "Personal Relationship Strategy Guide",
                  "  - Specific action steps, red flags and green flags",
                  "Spiritual Growth & Preparation",
                  "  - Soul lessons and practices before meeting the one",
                  "Cosmic Timing & Manifestation",
                  "  - Timing windows, moon cycle practices, affirmations"]
    if "aura" in addons:
        lines += ["Aura Reading", f"  - Their aura in {quiz.preferences.aura_palette or 'warm golden'} tones and how it attracts"]
    if "twin_flame" in addons:
        lines += ["Twin Flame Connection", "  - Mirroring, growth themes and guidance for the twin flame journey"]
    if "past_life" in addons:
        lines += ["Past Life Glimpse", "  - A past-life scene, unfinished business and this lifetime's lessons"]
    lines += ["",
              "LENGTH: basic 700-900 words, plus 1000-1300 words, premium 1500-2000 words.",
              "",
              "COMPLETE QUIZ DATA:",
              json.dumps(quiz.to_dict(), indent=2, ensure_ascii=False),
              "",
              f"Service Level: {tier}",
              f"Enhancement Add-ons: {json.dumps(addons)}"]
    return "\n".join(lines)


class FallbackProfileWriter:
    method = "fallback"

    def write(self, quiz: QuizAnswers, tier: str, addons: List[str]) -> str:
        return FALLBACK_PROFILE_TEXT


class OpenAIProfileWriter:
    method = "openai"

    def __init__(self, api_key: str, model: str, client=None):
        if client is None:
            from openai import OpenAI
            client = OpenAI(api_key=api_key)
        self.client = client
        self.model = model

    def write(self, quiz: QuizAnswers, tier: str, addons: List[str]) -> str:
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                temperature=0.9,
                max_tokens=4000,
                messages=[{"role": "system", "content": SYSTEM_PROMPT},
                          {"role": "user", "content": build_prompt(quiz, tier, addons)}],
            )
            text = (resp.choices[0].message.content or "").strip()
        except Exception as e:
            logger.warning("Profile text generation failed, using fallback: %s", e)
            return FALLBACK_PROFILE_TEXT
        if len(text) < MIN_PROFILE_CHARS:
            logger.warning("Profile text too short (%d chars), using fallback", len(text))
            return FALLBACK_PROFILE_TEXT
        return text


def build_profile_writer(settings: Settings):
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY not set; profile text uses the fixed fallback")
        return FallbackProfileWriter()
    return OpenAIProfileWriter(settings.OPENAI_API_KEY, settings.OPENAI_MODEL)
