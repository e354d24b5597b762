from datetime import date, datetime
from typing import Optional

MASTER_NUMBERS = (11, 22, 33, 44)

# (sign, last month, last day); a date belongs to the first sign whose end it does not pass
_ZODIAC_BOUNDS = [
    ("capricorn", 1, 19), ("aquarius", 2, 18), ("pisces", 3, 20), ("aries", 4, 19),
    ("taurus", 5, 20), ("gemini", 6, 20), ("cancer", 7, 22), ("leo", 8, 22),
    ("virgo", 9, 22), ("libra", 10, 22), ("scorpio", 11, 21), ("sagittarius", 12, 21),
    ("capricorn", 12, 31),
]

ZODIAC_TRAITS = {
    "aries": "Fire energy - passionate, direct communication, adventurous spirit",
    "taurus": "Earth stability - sensual, loyal, values comfort and security",
    "gemini": "Air intellect - witty, curious, needs mental stimulation",
    "cancer": "Water emotion - nurturing, intuitive, values home and family",
    "leo": "Fire confidence - generous, dramatic, seeks appreciation and fun",
    "virgo": "Earth precision - practical, helpful, values improvement and service",
    "libra": "Air harmony - diplomatic, romantic, seeks balance and beauty",
    "scorpio": "Water intensity - passionate, mysterious, desires deep transformation",
    "sagittarius": "Fire freedom - optimistic, philosophical, loves growth and travel",
    "capricorn": "Earth ambition - disciplined, responsible, values achievement",
    "aquarius": "Air innovation - independent, humanitarian, seeks unique connections",
    "pisces": "Water intuition - compassionate, dreamy, values spiritual connection",
}

ZODIAC_COMPATIBILITY = {
    "aries": "Leo or Sagittarius fire energy, or balancing Libra air energy",
    "taurus": "Virgo or Capricorn earth energy, or passionate Scorpio intensity",
    "gemini": "Libra or Aquarius air energy, or adventurous Sagittarius spirit",
    "cancer": "Scorpio or Pisces water energy, or grounding Taurus stability",
    "leo": "Aries or Sagittarius fire energy, or harmonizing Gemini intellect",
    "virgo": "Taurus or Capricorn earth energy, or intuitive Cancer warmth",
    "libra": "Gemini or Aquarius air energy, or confident Leo radiance",
    "scorpio": "Cancer or Pisces water energy, or stable Taurus grounding",
    "sagittarius": "Aries or Leo fire energy, or communicative Gemini wit",
    "capricorn": "Taurus or Virgo earth energy, or nurturing Cancer care",
    "aquarius": "Gemini or Libra air energy, or bold Leo creativity",
    "pisces": "Cancer or Scorpio water energy, or practical Virgo support",
}

LIFE_PATH_INSIGHTS = {
    1: "Natural leader energy - seeks independent, ambitious partners",
    2: "Cooperative, diplomatic - thrives with supportive, gentle souls",
    3: "Creative, expressive - drawn to artistic, communicative types",
    4: "Practical, stable - values reliability and long-term commitment",
    5: "Freedom-loving, adventurous - needs exciting, flexible partners",
    6: "Nurturing, family-oriented - seeks caring, home-focused connections",
    7: "Spiritual, introspective - connects with deep, thoughtful individuals",
    8: "Success-oriented, material - attracts ambitious, goal-driven types",
    9: "Humanitarian, compassionate - bonds with empathetic, service-minded souls",
    11: "Intuitive, inspirational - seeks spiritually aware, sensitive partners",
    22: "Master builder energy - drawn to practical visionaries",
    33: "Master teacher - connects with wise, healing-oriented individuals",
    44: "Master healer - drawn to partners who share a mission of service",
}


def parse_birth_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    value = value.strip()
    for fmt in ("%Y-%m-%d", "%m/%d/%Y", "%d.%m.%Y"):
        try:
            return datetime.strptime(value[:10], fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        return None


def zodiac_for_date(value) -> Optional[str]:
    d = value if isinstance(value, date) else parse_birth_date(value)
    if d is None:
        return None
    for sign, month, day in _ZODIAC_BOUNDS:
        if (d.month, d.day) <= (month, day):
            return sign
    return "capricorn"


def _digit_sum(n: int) -> int:
    return sum(int(c) for c in str(n))


def life_path_number(value) -> Optional[int]:
    """Sum every digit of MMDDYYYY; master numbers are never reduced."""
    d = value if isinstance(value, date) else parse_birth_date(value)
    if d is None:
        return None
    total = _digit_sum(int(f"{d.month:02d}{d.day:02d}{d.year}"))
    if total in MASTER_NUMBERS:
        return total
    while total > 9:
        total = _digit_sum(total)
        if total in MASTER_NUMBERS:
            return total
    return total


def zodiac_traits(sign: Optional[str]) -> str:
    return ZODIAC_TRAITS.get((sign or "").lower(), "Unique cosmic energy")


def zodiac_compatibility(sign: Optional[str]) -> str:
    if not sign:
        return "earth or water energy"
    return ZODIAC_COMPATIBILITY.get(sign.lower(), "complementary earth or water energy")


def life_path_insight(number: Optional[int]) -> str:
    return LIFE_PATH_INSIGHTS.get(number, "Unique path seeking understanding connections")


# life path -> (direction, kind of place, energy)
LOCATION_BY_LIFE_PATH = {
    1: ("East or Northeast", "urban centers", "dynamic business districts"),
    2: ("Southeast or South", "community-focused areas", "cooperative environments"),
    3: ("West or Southwest", "creative districts", "artistic communities"),
    4: ("North or Northwest", "established neighborhoods", "stable, traditional areas"),
    5: ("Central or multiple directions", "travel hubs", "cosmopolitan zones"),
    6: ("Southwest or West", "family-oriented areas", "nurturing communities"),
    7: ("North or Northeast", "educational centers", "intellectual environments"),
    8: ("Northwest or North", "financial districts", "ambitious professional areas"),
    9: ("South or Southeast", "diverse communities", "humanitarian organizations"),
    11: ("East or multiple directions", "spiritual centers", "enlightened communities"),
    22: ("Northeast or East", "development zones", "visionary projects"),
    33: ("Central or all directions", "healing centers", "service-oriented areas"),
}

ZODIAC_PLACES = {
    "aries": "near sports facilities, gyms, or competitive venues",
    "taurus": "in gardens, parks, or areas with natural beauty",
    "gemini": "around libraries, schools, or communication hubs",
    "cancer": "near water, homes, or family gathering places",
    "leo": "in entertainment districts, theaters, or social venues",
    "virgo": "around health centers, organized spaces, or service areas",
    "libra": "in aesthetic areas, art galleries, or partnership-focused venues",
    "scorpio": "near transformative spaces, research centers, or intense environments",
    "sagittarius": "around universities, travel hubs, or international areas",
    "capricorn": "in business districts, government areas, or achievement-focused zones",
    "aquarius": "around innovative spaces, tech hubs, or humanitarian organizations",
    "pisces": "near spiritual centers, water, or artistic communities",
}


def meeting_distance(introvert_extrovert: int, grounded_adventurous: int) -> str:
    if grounded_adventurous > 70:
        return "potentially through travel or relocation"
    if introvert_extrovert < 30:
        return "through expanded social circles"
    return "within your local area"


def location_prediction(quiz) -> str:
    """Where and how the soulmate is likely to be met, from life path, sign and sliders.

    Deterministic: the same quiz always yields the same text. Life paths without
    an entry (44, or no birth date) read as 5.
    """
    life_path = life_path_number(quiz.birth.date) or 5
    if life_path not in LOCATION_BY_LIFE_PATH:
        life_path = 5
    direction, kind, energy = LOCATION_BY_LIFE_PATH[life_path]
    place = ZODIAC_PLACES.get((quiz.birth.zodiac or "").lower(), "")
    lead = f"Given your current location in {quiz.user.country}, your" if quiz.user.country else "Your"
    distance = meeting_distance(quiz.personality.introvert_extrovert, quiz.personality.grounded_adventurous)
    return (f"{lead} soulmate is most likely to be found in the {direction} direction from your current "
            f"position. Look for connections in {kind}, particularly {place or energy}.\n\n"
            f"The cosmic timing suggests meeting {distance}. Your numerological signature (Life Path {life_path}) "
            f"creates magnetic attraction in {energy}, where your natural energy aligns with theirs.\n\n"
            f"Key locations to focus your attention: {kind} that embody {energy}. Trust your intuition when "
            f"visiting these spaces, you'll feel a heightened sense of possibility and connection.")
