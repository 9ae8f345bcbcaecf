"""
Smoke tests to verify basic application integrity.
Ensures that all modules can be imported and the entry point reports
engine failures with the right exit code.
"""
import unittest

from docktop.errors import EngineUnreachableError


class TestSmoke(unittest.TestCase):
    def test_import_textual_app(self):
        """Test that docktop.textual_app can be imported successfully."""
        try:
            import docktop.textual_app  # noqa: F401
        except ImportError as e:
            self.fail(f"Failed to import docktop.textual_app: {e}")

    def test_import_main_module(self):
        """Test that docktop.__main__ can be imported successfully."""
        try:
            import docktop.__main__  # noqa: F401
        except ImportError as e:
            self.fail(f"Failed to import docktop.__main__: {e}")

    def test_import_backend(self):
        """Test that docktop.backend can be imported successfully."""
        try:
            import docktop.backend  # noqa: F401
        except ImportError as e:
            self.fail(f"Failed to import docktop.backend: {e}")


def test_main_exits_1_when_engine_unreachable(mocker, capsys):
    import docktop.__main__ as entry
    mocker.patch.object(entry, "setup_logging")
    mocker.patch.object(entry.DockerBackend, "connect", side_effect=EngineUnreachableError("connection refused"))
    run = mocker.patch("docktop.textual_app.run")

    assert entry.main() == 1
    assert "cannot reach the container engine" in capsys.readouterr().err
    run.assert_not_called()


def test_main_exits_0_after_quit(mocker):
    import docktop.__main__ as entry
    mocker.patch.object(entry, "setup_logging")
    mocker.patch.object(entry.DockerBackend, "connect")
    close = mocker.patch.object(entry.DockerBackend, "close")
    run = mocker.patch("docktop.textual_app.run")

    assert entry.main() == 0
    run.assert_called_once()
    close.assert_called_once()


if __name__ == '__main__':
    unittest.main()
