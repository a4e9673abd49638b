from __future__ import annotations

import importlib.util
import pathlib

import pytest

from lottery_yield.config import config_as_dict

SCRIPTS = pathlib.Path(__file__).resolve().parents[1] / "scripts"


def _load_script(name: str):
    spec = importlib.util.spec_from_file_location(name, SCRIPTS / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture()
def clean_env(monkeypatch):
    # setenv first so monkeypatch also removes what load_dotenv adds.
    for name in ("DRAW_FEED_URL", "FETCH_BATCH_SIZE"):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    return monkeypatch


def test_config_reads_environment_at_build_time(clean_env):
    clean_env.setenv("DRAW_FEED_URL", "http://env.example/graphql")
    clean_env.setenv("FETCH_BATCH_SIZE", "not-a-number")

    settings = config_as_dict()

    assert settings["DRAW_FEED_URL"] == "http://env.example/graphql"
    assert settings["FETCH_BATCH_SIZE"] == 10


def test_sanity_script_honours_env_file(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("DRAW_FEED_URL=http://from-dotenv.example/graphql\nFETCH_BATCH_SIZE=4\n")

    settings = _load_script("run_sanity_check").load_settings(str(env_file))

    assert settings["DRAW_FEED_URL"] == "http://from-dotenv.example/graphql"
    assert settings["FETCH_BATCH_SIZE"] == 4
