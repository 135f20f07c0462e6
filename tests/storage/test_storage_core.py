"""Tests for slugify, id checks and storage initialization."""

from journeyquest import storage


def test_slugify_basic():
    assert storage.slugify("The Salt March") == "the-salt-march"


def test_slugify_apostrophe():
    assert storage.slugify("McConkey's Ferry") == "mcconkeys-ferry"


def test_slugify_unicode():
    assert storage.slugify("Café Münch") == "cafe-munch"


def test_slugify_empty():
    assert storage.slugify("") == "untitled"


def test_is_journey_id():
    assert storage.is_journey_id("the-salt-march")
    assert not storage.is_journey_id("../etc/passwd")
    assert not storage.is_journey_id("Salt March")
    assert not storage.is_journey_id("")


def test_is_attempt_id():
    assert storage.is_attempt_id(storage.new_attempt_id())
    assert not storage.is_attempt_id("abc")
    assert not storage.is_attempt_id("../" + "a" * 29)


def test_init_creates_dirs():
    assert storage.journeys_dir().is_dir()
    assert storage.attempts_dir().is_dir()
    assert storage.ledger_dir().is_dir()
    assert storage.preset_journeys_dir().is_dir()
