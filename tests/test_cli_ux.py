"""Tests for CLI UX module - styling and interactive prompts."""

from unittest.mock import MagicMock, patch


class TestEnvironmentDetection:
    """Test environment detection functions."""

    def test_is_interactive_in_ci(self):
        """_is_interactive returns False when CI env var is set."""
        from appwizard.cli.ux import _is_interactive

        with patch.dict("os.environ", {"CI": "true"}, clear=True):
            assert _is_interactive() is False

    def test_is_interactive_with_tty(self):
        """_is_interactive returns True when stdin and stdout are TTYs and not CI."""
        from appwizard.cli.ux import _is_interactive

        with patch.dict("os.environ", {}, clear=True):
            with patch("sys.stdout") as mock_stdout, patch("sys.stdin") as mock_stdin:
                mock_stdout.isatty.return_value = True
                mock_stdin.isatty.return_value = True
                assert _is_interactive() is True

    def test_is_interactive_without_tty(self):
        """_is_interactive returns False when stdout is piped."""
        from appwizard.cli.ux import _is_interactive

        with patch.dict("os.environ", {}, clear=True):
            with patch("sys.stdout") as mock_stdout, patch("sys.stdin") as mock_stdin:
                mock_stdout.isatty.return_value = False
                mock_stdin.isatty.return_value = True
                assert _is_interactive() is False


class TestPromptDefaults:
    """Prompts answer with their default outside a terminal."""

    @patch("appwizard.cli.ux._is_interactive", return_value=False)
    def test_confirm_default(self, _):
        """confirm returns its default outside a terminal."""
        from appwizard.cli.ux import confirm

        assert confirm("Provision?") is True
        assert confirm("Provision?", default=False) is False

    @patch("appwizard.cli.ux._is_interactive", return_value=False)
    def test_select_default(self, _):
        """select returns the default or the first choice."""
        from appwizard.cli.ux import select

        assert select("Zone:", ["a", "b"]) == "a"
        assert select("Zone:", ["a", "b"], default="b") == "b"

    @patch("appwizard.cli.ux._is_interactive", return_value=False)
    def test_password_empty(self, _):
        """password_input returns an empty string outside a terminal."""
        from appwizard.cli.ux import password_input

        assert password_input("Password:") == ""

    @patch("appwizard.cli.ux._is_interactive", return_value=True)
    @patch("appwizard.cli.ux.questionary")
    def test_confirm_cancelled_returns_default(self, mock_questionary, _):
        """Ctrl-C in questionary yields None; the default is used."""
        from appwizard.cli.ux import confirm

        mock_questionary.confirm.return_value = MagicMock(ask=MagicMock(return_value=None))
        assert confirm("Provision?", default=False) is False

    @patch("appwizard.cli.ux._is_interactive", return_value=True)
    @patch("appwizard.cli.ux.questionary")
    def test_text_input_answer(self, mock_questionary, _):
        """text_input returns the typed answer."""
        from appwizard.cli.ux import text_input

        mock_questionary.text.return_value = MagicMock(ask=MagicMock(return_value="europe-west1"))
        assert text_input("Region:") == "europe-west1"


class TestOutputFunctions:
    """Output helpers print through the shared console."""

    @patch("appwizard.cli.ux.console")
    def test_status_lines(self, mock_console):
        """Status helpers print themed, prefixed lines."""
        from appwizard.cli.ux import error, success, warning

        success("done")
        warning("careful")
        error("failed")

        printed = [c.args[0] for c in mock_console.print.call_args_list]
        assert printed == [
            "[success]✓ done[/success]",
            "[warning]⚠ careful[/warning]",
            "[error]✗ failed[/error]",
        ]

    @patch("appwizard.cli.ux.console")
    def test_print_table(self, mock_console):
        """print_table renders a rich Table."""
        from rich.table import Table

        from appwizard.cli.ux import print_table

        print_table("Services", ["#", "Service"], [["1", "db"], ["2", "api"]])

        table = mock_console.print.call_args.args[0]
        assert isinstance(table, Table)
        assert table.row_count == 2
