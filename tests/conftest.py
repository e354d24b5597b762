import os, tempfile

_tmp = tempfile.mkdtemp(prefix="soulsketch-tests-")
os.environ.update({
    "UPLOAD_DIR": os.path.join(_tmp, "uploads"),
    "LOG_DIR": os.path.join(_tmp, "logs"),
    "DB_URL": f"sqlite:///{os.path.join(_tmp, 'db', 'test.sqlite')}",
    "OPENAI_API_KEY": "",
    "STRIPE_SECRET_KEY": "",
    "SMTP_HOST": "",
    "SMTP_USER": "",
    "SMTP_PASS": "",
})

import pytest
from fastapi.testclient import TestClient
from soulsketch.config import Settings
from soulsketch.main import app

@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c

@pytest.fixture
def settings(tmp_path):
    return Settings(UPLOAD_DIR=str(tmp_path / "uploads"), LOG_DIR=str(tmp_path / "logs"),
                    DB_URL=f"sqlite:///{tmp_path / 'store.sqlite'}", OPENAI_API_KEY="", STRIPE_SECRET_KEY="",
                    SMTP_HOST="", SMTP_USER="", SMTP_PASS="")

@pytest.fixture
def quiz_answers():
    return {
        "user": {"email": "sam@example.com", "name": "Sam", "country": "Canada", "ageRange": "25-35",
                 "attractedTo": "women"},
        "birth": {"date": "1990-07-04", "city": "Toronto"},
        "appearance": {"faceShape": "heart", "hairColor": "auburn", "eyeColor": "green"},
        "personality": {"introvertExtrovert": 80, "groundedAdventurous": 20, "analyticalCreative": 55,
                        "values": ["honesty", "curiosity", "kindness"],
                        "loveLanguages": {"touch": 5, "words": 3, "gifts": 1}},
        "relationship": {"lookingFor": "a partner in adventure", "mustHaves": ["humour"]},
        "preferences": {"auraPalette": "rose gold"},
        "style": "ethereal",
    }
