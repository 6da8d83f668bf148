import tomllib
from pathlib import Path

PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


class TestProjectMetadata:
    def test_metadata_declares_only_package_files(self):
        project = tomllib.loads(PYPROJECT.read_text())["project"]

        assert "readme" not in project
        assert project["scripts"]["live-translate"] == "live_translate.__main__:main"
