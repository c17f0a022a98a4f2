"""Tests for job name and log file extraction."""

from cronmanager.crontab.naming import extract_job_name, extract_log_files, extract_script_path


class TestExtractScriptPath:
    """Tests for extract_script_path."""

    def test_interpreter_argument(self):
        assert extract_script_path("python3 /opt/tools/run.py --fast") == "/opt/tools/run.py"

    def test_first_token_fallback(self):
        assert extract_script_path("/usr/local/bin/backup.sh daily") == "/usr/local/bin/backup.sh"

    def test_quotes_removed(self):
        assert extract_script_path("python3 '/opt/run.py'") == "/opt/run.py"

    def test_empty_command(self):
        assert extract_script_path("   ") is None


class TestExtractJobName:
    """Tests for extract_job_name."""

    def test_last_three_parts_without_extension(self):
        assert extract_job_name("python3 /home/me/tools/sync/run.py") == "tools/sync/run"

    def test_short_path(self):
        assert extract_job_name("node app.js") == "app"

    def test_binary_name(self):
        assert extract_job_name("/usr/bin/find /tmp -delete") == "usr/bin/find"

    def test_fallback_is_truncated_command(self):
        command = "/" + " x" * 60

        assert extract_job_name(command) == command[:50]


class TestExtractLogFiles:
    """Tests for extract_log_files."""

    def test_all_redirection_kinds(self):
        command = "a > /tmp/1.log; b >> /tmp/2.log 2> /tmp/3.log; c 2>> /tmp/4.log; d &> /tmp/5.log"

        assert extract_log_files(command) == [
            "/tmp/1.log", "/tmp/2.log", "/tmp/3.log", "/tmp/4.log", "/tmp/5.log",
        ]

    def test_dev_targets_skipped(self):
        assert extract_log_files("cmd > /dev/null 2>&1") == []

    def test_quoted_paths_unescaped_and_deduplicated(self):
        command = "cmd >> ~/'logs/app.log' 2>> ~/'logs/app.log'"

        assert extract_log_files(command) == ["~/logs/app.log"]


class TestInterpreterDetection:
    """The interpreter must be a separate word."""

    def test_script_extension_is_not_an_interpreter(self):
        assert extract_script_path("/opt/backup.sh --all") == "/opt/backup.sh"

    def test_interpreter_given_by_path(self):
        assert extract_job_name("/usr/bin/python3 /srv/jobs/report.py") == "srv/jobs/report"
