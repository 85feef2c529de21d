"""Infrastructure bundle: resource group project, admin tool and migrations.

Everything lands in one folder so the release job can deploy the resource
group and then migrate databases from the same artifact::

    <artifacts>/Infrastructure/
    ├── <resource group build output>
    ├── <database admin tool publish output>
    ├── migrations/
    └── apim-migrations/
"""

from __future__ import annotations

import shutil
from pathlib import Path

from buildspine.archiver import Archiver
from buildspine.config import PipelineConfig
from buildspine.core.logging import get_logger
from buildspine.database import migrations_path
from buildspine.publisher import APIM_FOLDER
from buildspine.shell import CommandRunner
from buildspine.vso import CiReporter

logger = get_logger(__name__)


def infra_build_command(config: PipelineConfig, output: str) -> list[str]:
    return [
        config.dotnet,
        "build",
        str(config.repo_root / config.infra_project),
        "-c",
        config.configuration,
        "--no-restore",
        "-o",
        output,
    ]


def admin_publish_command(config: PipelineConfig, output: str) -> list[str]:
    return [
        config.dotnet,
        "publish",
        str(config.repo_root / config.db_admin_project),
        "-c",
        config.configuration,
        "--no-restore",
        "--no-build",
        "-o",
        output,
    ]


class InfraPackager:
    def __init__(
        self,
        config: PipelineConfig,
        runner: CommandRunner,
        reporter: CiReporter,
        archiver: Archiver,
    ) -> None:
        self.config = config
        self.runner = runner
        self.reporter = reporter
        self.archiver = archiver

    @property
    def output_dir(self) -> Path:
        return self.config.artifacts_path / self.config.infra_output

    def package(self) -> Path:
        """Build the bundle, announce it and archive ``ApimPublish``."""
        out = str(self.output_dir.resolve())
        cfg = self.config

        logger.info("infra.packaging", project=cfg.infra_project, output=out)
        self.runner.run(infra_build_command(cfg, out), cwd=cfg.repo_root)
        self.runner.run(admin_publish_command(cfg, out), cwd=cfg.repo_root)

        for migrations_dir in (cfg.migrations_dir, cfg.apim_migrations_dir):
            source = migrations_path(cfg, migrations_dir)
            target = self.output_dir / source.name
            shutil.copytree(source, target, dirs_exist_ok=True)
            logger.debug("infra.migrations_copied", source=str(source), target=str(target))

        self.reporter.upload_artifact(self.output_dir.resolve(), cfg.infra_output)

        apim_dir = cfg.artifacts_path / APIM_FOLDER
        if apim_dir.is_dir():
            self.archiver.archive(apim_dir, APIM_FOLDER)
        else:
            logger.warning("infra.no_apim_publish", path=str(apim_dir))
        logger.info("infra.packaged", output=out)
        return self.output_dir
