import logging
import os

import pytest

from live_translate.__main__ import _load_env_file, _run_verify, build_parser
from live_translate.config import LiveTranslateConfig
from live_translate.domain.errors import UpstreamTransportError
from live_translate.verify import verify_scribe

from conftest import FakeMinter, FakeTranscriber


class TestVerifyScribe:
    @pytest.mark.asyncio
    async def test_streams_commits_and_closes(self, caplog):
        transcriber = FakeTranscriber()
        caplog.set_level(logging.INFO, logger="live_translate.verify")

        code = await verify_scribe(
            b"\x01\x00" * 4000,
            token_minter=FakeMinter(),
            transcriber=transcriber,
            pacing_seconds=0,
            settle_seconds=0,
        )

        connection = transcriber.last
        assert code == 0
        assert connection.options.commit_strategy == "manual"
        assert connection.options.vad_silence_threshold_secs is None
        assert sum(len(c.audio_base64) for c in connection.sent) > 0
        assert len(connection.sent) == 2
        assert connection.commits == 1
        assert connection.close_calls == 1
        assert "[OPEN]" in caplog.text
        assert "[CLOSE]" in caplog.text

    @pytest.mark.asyncio
    async def test_mint_failure_exits_nonzero(self):
        transcriber = FakeTranscriber()
        minter = FakeMinter(error=UpstreamTransportError("Failed to mint ElevenLabs token.", status=401))

        code = await verify_scribe(b"", token_minter=minter, transcriber=transcriber)

        assert code == 1
        assert transcriber.connections == []

    @pytest.mark.asyncio
    async def test_never_opened_exits_nonzero(self):
        transcriber = FakeTranscriber(auto_open=False)

        code = await verify_scribe(
            b"\x00" * 3200,
            token_minter=FakeMinter(),
            transcriber=transcriber,
            open_timeout=0.05,
        )

        assert code == 1
        assert transcriber.last.sent == []
        assert transcriber.last.close_calls == 1


class TestVerifyCommand:
    def _config(self, **values) -> LiveTranslateConfig:
        return LiveTranslateConfig(**{"elevenlabs_api_key": "", "elevenlabs_api_key_file": "", **values})

    def test_missing_key(self, capsys, tmp_path):
        assert _run_verify(self._config(), str(tmp_path / "a.pcm")) == 1
        assert "ELEVENLABS_API_KEY" in capsys.readouterr().err

    def test_missing_argument(self, capsys):
        assert _run_verify(self._config(elevenlabs_api_key="xi"), None) == 1
        assert "Usage" in capsys.readouterr().err

    def test_missing_file(self, capsys, tmp_path):
        assert _run_verify(self._config(elevenlabs_api_key="xi"), str(tmp_path / "nope.pcm")) == 1
        assert "File not found" in capsys.readouterr().err


class TestCli:
    def test_parser_commands(self):
        parser = build_parser()
        args = parser.parse_args(["-v", "serve", "--port", "9000", "--capture", "sounddevice"])
        assert args.verbose
        assert args.command == "serve"
        assert args.port == 9000
        assert args.capture == "sounddevice"

        args = parser.parse_args(["verify-scribe", "clip.pcm"])
        assert args.command == "verify-scribe"
        assert args.pcm_path == "clip.pcm"

    def test_env_file_does_not_override_environment(self, tmp_path, monkeypatch):
        env_file = tmp_path / "env"
        env_file.write_text("# keys\nLT_TEST_A='from-file'\nLT_TEST_B=from-file\nbroken line\n")
        monkeypatch.setenv("LT_TEST_B", "from-env")
        monkeypatch.delenv("LT_TEST_A", raising=False)

        _load_env_file(env_file)

        assert os.environ["LT_TEST_A"] == "from-file"
        assert os.environ["LT_TEST_B"] == "from-env"
