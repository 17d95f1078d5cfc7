"""aws CLI helpers shared by the AWS adapters."""

from __future__ import annotations

import json
from typing import Any

import structlog

from appwizard.config.settings import Settings
from appwizard.infra.runner import CommandResult, CommandRunner

logger = structlog.get_logger()


class AWSCli:
    """Builds ``aws`` invocations with the configured region and profile."""

    def __init__(self, runner: CommandRunner, settings: Settings, region: str):
        self.runner = runner
        self.settings = settings
        self.region = region

    def run(self, *args: str) -> CommandResult:
        argv = ["aws", *args, "--region", self.region]
        if self.settings.aws_profile:
            argv += ["--profile", self.settings.aws_profile]
        return self.runner.run(argv)

    def json(self, *args: str) -> Any | None:
        result = self.run(*args, "--output", "json")
        if not result.ok:
            logger.warning("aws_command_failed", args=list(args), stderr=result.stderr.strip())
            return None
        try:
            return json.loads(result.stdout or "null")
        except json.JSONDecodeError:
            logger.warning("aws_output_not_json", args=list(args))
            return None

    def text(self, *args: str) -> str | None:
        """Run with ``--output text``; None on failure or an empty/None answer."""
        result = self.run(*args, "--output", "text")
        if not result.ok:
            logger.warning("aws_command_failed", args=list(args), stderr=result.stderr.strip())
            return None
        value = result.stdout.strip()
        return None if value in ("", "None") else value

    def ensure_authenticated(self) -> bool:
        """``aws sts get-caller-identity``; False rather than raising."""
        result = self.run("sts", "get-caller-identity")
        if result.ok:
            return True

        if self.settings.auto_login and self.settings.aws_profile:
            login = self.runner.run(["aws", "sso", "login", "--profile", self.settings.aws_profile])
            if login.ok and self.run("sts", "get-caller-identity").ok:
                logger.info("aws_auto_login_succeeded", profile=self.settings.aws_profile)
                return True

        logger.warning("aws_not_authenticated", stderr=result.stderr.strip())
        return False
