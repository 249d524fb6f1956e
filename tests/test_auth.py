import pytest

from chatclient.auth import KeyProvider, load_dotfile
from chatclient.errors import AuthenticationMissingError
from chatclient.settings import Settings


def test_explicit_key_wins(tmp_path):
    dotfile = tmp_path / ".openai"
    dotfile.write_text("OPENAI_API_KEY=sk-file\n")
    provider = KeyProvider(
        "sk-explicit",
        settings=Settings(openai_api_key="sk-env"),
        search_paths=[dotfile],
    )

    assert provider.get().api_key == "sk-explicit"


def test_environment_beats_dotfile(tmp_path):
    dotfile = tmp_path / ".openai"
    dotfile.write_text("OPENAI_API_KEY=sk-file\n")
    provider = KeyProvider(settings=Settings(openai_api_key="sk-env"), search_paths=[dotfile])

    assert provider.get().api_key == "sk-env"


def test_settings_read_key_from_environment(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")

    assert Settings().openai_api_key == "sk-from-env"


def test_dotfile_used_when_nothing_else_is_set(tmp_path):
    dotfile = tmp_path / ".openai"
    dotfile.write_text("# local credentials\nOPENAI_KEY=sk-file\nOPENAI_ORGANIZATION=org-file\n")
    provider = KeyProvider(
        settings=Settings(openai_api_key=None, openai_organization=None),
        search_paths=[tmp_path / "missing", dotfile],
    )

    credentials = provider.get()
    assert credentials.api_key == "sk-file"
    assert credentials.organization == "org-file"


def test_bare_key_dotfile(tmp_path):
    dotfile = tmp_path / ".openai"
    dotfile.write_text("sk-bare\n")

    assert load_dotfile(dotfile).api_key == "sk-bare"


def test_dotfile_without_key_is_skipped(tmp_path):
    dotfile = tmp_path / ".openai"
    dotfile.write_text("OPENAI_ORGANIZATION=org-only\n")

    assert load_dotfile(dotfile) is None


def test_missing_everywhere_raises(tmp_path):
    provider = KeyProvider(
        settings=Settings(openai_api_key=None),
        search_paths=[tmp_path / ".openai"],
    )

    with pytest.raises(AuthenticationMissingError):
        provider.get()


def test_lookup_is_lazy(tmp_path):
    dotfile = tmp_path / ".openai"
    provider = KeyProvider(settings=Settings(openai_api_key=None), search_paths=[dotfile])

    dotfile.write_text("OPENAI_API_KEY=sk-late\n")

    assert provider.get().api_key == "sk-late"
