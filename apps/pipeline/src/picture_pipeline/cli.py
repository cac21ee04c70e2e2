"""CLI for the picture pipeline."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from picture_converter import EncodeError
from picture_shared.files import AssetError

from .config import PipelineConfig
from .service import ImageService


@click.command()
@click.argument("references", nargs=-1, required=True)
@click.option("--source-base", type=click.Path(file_okay=False, path_type=Path),
              help="Trusted root for local images")
@click.option("--output-base", type=click.Path(file_okay=False, path_type=Path),
              help="Directory outputs are written under")
@click.option("--public-base", default=None, help="URL prefix for written assets")
@click.option("--no-public", is_flag=True, help="Do not produce public paths")
@click.option("--no-remote", is_flag=True, help="Reject http(s) image references")
@click.option("--max-width", type=int, help="Maximum output width")
@click.option("--min-width", type=int, help="Minimum width the encoder may shrink to")
@click.option("--max-bytes", type=int, help="Byte budget for each variant")
@click.option("-w", "--workers", type=int, help="Concurrent encodes")
@click.option("--relative-path", help="Output path (single reference only)")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def cli(references: tuple[str, ...], source_base: Path | None, output_base: Path | None,
        public_base: str | None, no_public: bool, no_remote: bool, max_width: int | None,
        min_width: int | None, max_bytes: int | None, workers: int | None,
        relative_path: str | None, verbose: bool) -> None:
    """Convert images into WebP + fallback pairs within a byte budget."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    if relative_path and len(references) > 1:
        raise click.UsageError("--relative-path needs exactly one reference")

    config = PipelineConfig.load()
    overrides = {
        "output_base": output_base,
        "source_base": source_base,
        "public_base": public_base,
        "max_width": max_width,
        "min_width": min_width,
        "max_bytes": max_bytes,
    }
    try:
        options = config.processing_options().replace(
            **{k: v for k, v in overrides.items() if v is not None}
        )
        if no_public:
            options = options.replace(public_base=None)
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    allow_remote = config.allow_remote and not no_remote
    with ImageService(options, max_workers=workers or config.workers,
                      allow_remote=allow_remote) as service:
        try:
            futures = [
                service.submit(reference, relative_path=relative_path)
                for reference in references
            ]
            for reference, future in zip(references, futures):
                result = future.result()
                click.echo(json.dumps({"source": reference[:120], **result.to_dict()}))
        except (AssetError, EncodeError, OSError) as e:
            logging.error("%s: %s", type(e).__name__, e)
            service.close(cancel_pending=True)
            sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
