"""Upload a service definition and regenerate the combined API docs.

Steps run strictly one after another, each consuming the full output of the previous
one. Nothing is retried and completed steps are not rolled back when a later one fails,
e.g. the uploaded definition stays in the bucket even if rendering fails.
"""
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from botocore.client import BaseClient

from apidocs import definitions, s3_utils
from apidocs.config import Config
from apidocs.exceptions import ConfigError
from apidocs.merge import Merger, OpenAPIMerger, merge_definitions
from apidocs.publish import publish_docs
from apidocs.render import RedocRenderer, Renderer

log = structlog.get_logger()


class Stage(str, Enum):
    NOT_STARTED = "not_started"
    UPLOADING = "uploading"
    DISCOVERING = "discovering"
    FETCHING = "fetching"
    MERGING = "merging"
    RENDERING = "rendering"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


class DocsPipeline:
    stage: Stage

    def __init__(
        self,
        config: Config,
        client: Optional[BaseClient] = None,
        merger: Optional[Merger] = None,
        renderer: Optional[Renderer] = None,
    ) -> None:
        self.config = config
        self.client = client or s3_utils.connect_s3(config.region_name)
        self.merger = merger or OpenAPIMerger()
        self.renderer = renderer or RedocRenderer(config.render_command)
        self.stage = Stage.NOT_STARTED

    def _enter(self, stage: Stage) -> None:
        self.stage = stage
        log.info(f"pipeline.{stage.value}")

    def run(self, service_name: str, dry_run: bool = False, skip_upload: bool = False) -> Dict[str, Any]:
        """Run the whole pipeline for `service_name` and return the merged spec.

        With `dry_run` nothing is written to the bucket, the local definition is merged in
        place of the stored one. With `skip_upload` docs are regenerated from the bucket only.
        """
        try:
            return self._run(service_name, dry_run=dry_run, skip_upload=skip_upload)
        except Exception:
            log.error("pipeline.failed", stage=self.stage.value, service=service_name)
            self.stage = Stage.FAILED
            raise

    def _run(self, service_name: str, dry_run: bool, skip_upload: bool) -> Dict[str, Any]:
        service_name = (service_name or "").strip()
        if not service_name:
            raise ConfigError("Service name is required")

        cfg = self.config

        if not dry_run and not skip_upload:
            self._enter(Stage.UPLOADING)
            definitions.upload_definition(self.client, cfg.bucket, service_name, cfg.definition_file, cfg.prefix)

        self._enter(Stage.DISCOVERING)
        service_names = definitions.discover_service_names(self.client, cfg.bucket, cfg.prefix)

        self._enter(Stage.FETCHING)
        if dry_run:
            definition_list = self._fetch_with_local_definition(service_name, service_names)
        else:
            definition_list = definitions.fetch_definitions(self.client, cfg.bucket, service_names, cfg.prefix)

        self._enter(Stage.MERGING)
        spec = merge_definitions(definition_list, cfg.merged_spec_file, merger=self.merger)

        self._enter(Stage.RENDERING)
        self.renderer.render(cfg.merged_spec_file, cfg.rendered_doc_file)

        if dry_run:
            log.info("pipeline.dry_run", rendered_doc_file=str(cfg.rendered_doc_file))
        else:
            self._enter(Stage.PUBLISHING)
            publish_docs(self.client, cfg.bucket, cfg.rendered_doc_file, cfg.index_key)

        self._enter(Stage.DONE)
        return spec

    def _fetch_with_local_definition(self, service_name: str, service_names: List[str]) -> List[Dict[str, Any]]:
        local = definitions.parse_definition(
            Path(self.config.definition_file).read_bytes(), source=str(self.config.definition_file)
        )
        if service_name not in service_names:
            service_names = service_names + [service_name]

        others = [name for name in service_names if name != service_name]
        stored = iter(definitions.fetch_definitions(self.client, self.config.bucket, others, self.config.prefix))
        return [local if name == service_name else next(stored) for name in service_names]
