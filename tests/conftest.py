"""Shared pytest fixtures for rasa-xref tests."""

from pathlib import Path
from textwrap import dedent

import pytest
import pytest_asyncio

from rasa_xref.config import get_settings
from rasa_xref.services.project_service import RasaProjectService
from rasa_xref.services.yaml_parser import YamlParserService


CONFIG_YML = """\
language: en
pipeline:
  - name: WhitespaceTokenizer
policies:
  - name: RulePolicy
"""

DOMAIN_YML = """\
version: "3.1"
intents:
  - greet
  - goodbye
  - ask_weather:
      use_entities: [city]
entities:
  - city
slots:
  city:
    type: text
    mappings:
      - type: from_entity
        entity: city
responses:
  utter_greet:
    - text: "Hello!"
  utter_goodbye:
    - text: "Bye!"
actions:
  - action_check_weather
forms:
  weather_form:
    required_slots:
      - city
"""

NLU_YML = """\
version: "3.1"
nlu:
  - intent: greet
    examples: |
      - hi
      - hello
  - intent: goodbye
    examples: |
      - bye
  - intent: ask_weather
    examples: |
      - what's the weather in [Paris](city)
  - synonym: paris
    examples: |
      - Paris
"""

STORIES_YML = """\
version: "3.1"
stories:
  - story: weather
    steps:
      - intent: greet
      - action: utter_greet
      - intent: ask_weather
      - action: weather_form
      - active_loop: weather_form
      - slot_was_set:
          - city: Paris
      - active_loop: null
      - action: action_check_weather
"""

RULES_YML = """\
version: "3.1"
rules:
  - rule: say goodbye
    steps:
      - intent: goodbye
      - action: utter_goodbye
"""


def write_file(root: Path, relative: str, content: str) -> Path:
    """Write a project file, creating parent directories."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dedent(content), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached; tests that patch the environment need a fresh copy."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def rasa_project(tmp_path: Path) -> Path:
    """A small, fully consistent Rasa project."""
    write_file(tmp_path, "config.yml", CONFIG_YML)
    write_file(tmp_path, "domain.yml", DOMAIN_YML)
    write_file(tmp_path, "data/nlu.yml", NLU_YML)
    write_file(tmp_path, "data/stories.yml", STORIES_YML)
    write_file(tmp_path, "data/rules.yml", RULES_YML)
    return tmp_path


@pytest.fixture
def parser() -> YamlParserService:
    return YamlParserService(max_file_size=1024 * 1024)


@pytest_asyncio.fixture
async def project_service(rasa_project: Path) -> RasaProjectService:
    """Initialized project service over the fixture project."""
    service = RasaProjectService(str(rasa_project))
    await service.initialize()
    return service
