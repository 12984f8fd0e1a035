"""CI step entry point: upload the service's OpenAPI definition and publish the combined API docs."""
import sys
from pathlib import Path
from typing import Optional

import bugsnag
import rich_click as click
import structlog

from apidocs import config
from apidocs.config import Config
from apidocs.pipeline import DocsPipeline

log = structlog.get_logger()


def set_failed(message: str) -> None:
    """Report step failure to the CI runner and exit."""
    # GitHub Actions workflow command, shows up as an annotation on the run
    click.echo(f"::error::{message}")
    sys.exit(1)


@click.command(help=__doc__)
@click.option(
    "--service",
    "-s",
    type=str,
    default="",
    envvar="INPUT_SERVICE",
    help="Name of the service whose definition is uploaded, e.g. `organization`.",
)
@click.option(
    "--bucket",
    type=str,
    default=None,
    help=f"Bucket name, defaults to ${config.BUCKET_ENV_VAR}.",
)
@click.option(
    "--definition-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Local OpenAPI definition of the service.",
)
@click.option(
    "--merged-spec-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Where to write the merged spec (JSON).",
)
@click.option(
    "--rendered-doc-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Where the renderer writes the HTML docs.",
)
@click.option(
    "--render-command",
    type=str,
    default=None,
    help="Renderer command, `-o OUT SPEC` is appended. Defaults to redoc-cli via npx.",
)
@click.option(
    "--dry-run/--no-dry-run",
    default=False,
    type=bool,
    help="Build the docs locally without writing anything to the bucket.",
)
@click.option(
    "--skip-upload/--no-skip-upload",
    default=False,
    type=bool,
    help="Regenerate docs from the bucket without uploading the local definition.",
)
def cli(
    service: str,
    bucket: Optional[str],
    definition_file: Optional[Path],
    merged_spec_file: Optional[Path],
    rendered_doc_file: Optional[Path],
    render_command: Optional[str],
    dry_run: bool,
    skip_upload: bool,
) -> None:
    """
    Upload `openapi-definition.yml` of SERVICE to the bucket, merge definitions of all services
    and publish the rendered docs as `index.html`.

    Example:
        AWS_OPENAPI_BUCKET=my-docs-bucket apidocs --service organization
    """
    config.enable_bugsnag()

    log.info("cli.start", service=service)
    try:
        cfg = Config.from_env(
            bucket=bucket,
            definition_file=definition_file,
            merged_spec_file=merged_spec_file,
            rendered_doc_file=rendered_doc_file,
            render_command=render_command.split() if render_command else None,
        )
        DocsPipeline(cfg).run(service, dry_run=dry_run, skip_upload=skip_upload)
    except Exception as e:
        if config.BUGSNAG_API_KEY:
            bugsnag.notify(e)
        set_failed(str(e))

    log.info("cli.done")


if __name__ == "__main__":
    cli()
