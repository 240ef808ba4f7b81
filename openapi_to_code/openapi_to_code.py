import json
import logging
from pathlib import Path

import click

from .document import load_document
from .log import configure_logging
from .pipeline import CodeGeneratorConfig, OpenApiToCodeError, PipelineGenerator

logger = logging.getLogger(__name__)


@click.command()
@click.option("--config", "-c", default=None, type=click.Path(exists=True, resolve_path=True))
@click.option("--language", "-l", default="typescript", type=click.Choice(["typescript", "python"]))
@click.option("--dialect", "-d", default=None, type=click.Choice(["3.0", "3.1"]), help="Override the dialect read from the document's 'openapi' field")
@click.option(
    "--operations",
    "-o",
    default=None,
    type=click.Path(resolve_path=True),
    help="Also write the document's operations as JSON to this file",
)
@click.option("--log-level", default="ERROR", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.argument("path", default=None, type=click.Path(exists=True, resolve_path=True))
@click.argument("output", default=None, type=click.Path(resolve_path=True))
def openapi_to_code(config, language, dialect, operations, log_level, path, output):
    """Generate typed declarations for the schemas of the OpenAPI document PATH."""
    configure_logging(log_level)

    if config is not None:
        with open(config) as f:
            config = CodeGeneratorConfig.from_dict(json.load(f))
    else:
        config = CodeGeneratorConfig()

    # CLI flag overrides config file if set
    if dialect is not None:
        config.dialect_version = dialect

    try:
        config.dialect
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    try:
        document = load_document(path)
        codegen = PipelineGenerator(document, config, language)
        out = codegen.generate()
        records = codegen.extract_operations() if operations else None
    except OpenApiToCodeError as e:
        raise click.ClickException(str(e)) from e

    for warning in codegen.warnings:
        click.echo(f"warning: {warning}", err=True)

    with open(output, "w") as f:
        f.write(out)
    logger.info("Wrote %s", output)

    if records is not None:
        with open(operations, "w") as f:
            json.dump([r.to_dict() for r in records], f, indent=2, default=str)
        logger.info("Wrote %d operations to %s", len(records), Path(operations).name)


if __name__ == "__main__":
    openapi_to_code()
