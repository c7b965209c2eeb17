"""Tests for the command line front end."""

import json

import pytest

from createosaur.main import main


@pytest.fixture
def state(tmp_path, monkeypatch):
    for key in ("HUGGINGFACE_API_KEY", "OPENAI_API_KEY", "STABILITY_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    return tmp_path / "state.json"


def test_set_key_persists(state, capsys):
    assert main(["--state", str(state), "set-key", "stability", "sk-test"]) == 0

    assert json.loads(state.read_text())["STABILITY_API_KEY"] == "sk-test"
    assert "Saved key for Stability AI" in capsys.readouterr().out


def test_set_key_warns_on_bad_prefix(state, capsys):
    assert main(["--state", str(state), "set-key", "huggingface", "nope"]) == 0
    assert 'must start with "hf_"' in capsys.readouterr().out


def test_set_key_unknown_provider(state, capsys):
    assert main(["--state", str(state), "set-key", "midjourney", "x"]) == 1
    assert "Unknown provider" in capsys.readouterr().out


def test_set_default(state):
    assert main(["--state", str(state), "set-default", "openai"]) == 0
    assert json.loads(state.read_text())["createosaur-default-provider"] == "openai"
    assert main(["--state", str(state), "set-default", "nope"]) == 1


def test_providers_listing(state, capsys):
    main(["--state", str(state), "set-key", "openai", "sk-openai"])
    capsys.readouterr()

    assert main(["--state", str(state), "providers"]) == 0
    out = capsys.readouterr().out
    assert "Hugging Face API key is required" in out
    assert "dall-e-3" in out
    assert "* huggingface" in out


def test_capabilities(capsys):
    assert main(["capabilities"]) == 0
    out = capsys.readouterr().out
    assert "sdxl-premium" in out
    assert "stable-diffusion-xl-1024-v1-0" in out


def test_trial_status(state, capsys):
    assert main(["--state", str(state), "trial"]) == 0
    out = capsys.readouterr().out
    assert "State:     fresh" in out
    assert "Used:      0/3" in out


def test_generate_in_demo_mode(state, tmp_path, capsys):
    output = tmp_path / "out" / "dino.png"

    code = main(["--state", str(state), "generate", "a red dinosaur", "--output", str(output)])

    assert code == 0
    saved = output.with_suffix(".svg")
    assert saved.exists()
    assert saved.read_bytes().startswith(b"<")
    out = capsys.readouterr().out
    assert "demo mode" in out
    assert "[100%] Complete" in out


def test_generate_numbers_outputs(state, tmp_path):
    output = tmp_path / "dino.png"

    assert main([
        "--state", str(state), "generate", "a red dinosaur", "--count", "2", "--output", str(output)
    ]) == 0

    assert (tmp_path / "dino_1.svg").exists()
    assert (tmp_path / "dino_2.svg").exists()
