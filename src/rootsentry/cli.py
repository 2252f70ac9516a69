# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Command line interface for rootsentry."""

from __future__ import annotations

import dataclasses
import logging
from typing import Optional

import click

from rootsentry.catalog import DEFAULT_CATALOG, CatalogError, ProbeCatalog, load_catalog
from rootsentry.engine import RootDetector
from rootsentry.errors import EngineError
from rootsentry.host import default_host
from rootsentry.policy import load_policy
from rootsentry.registry import build_registry
from rootsentry.report import render_json, render_text

EXIT_CLEAN = 0
EXIT_ROOTED = 1
EXIT_INTERNAL = 3
EXIT_CANCELLED = 130

_logger = logging.getLogger(__name__)


def _catalog(path: Optional[str]) -> ProbeCatalog:
    if not path:
        return DEFAULT_CATALOG
    try:
        return load_catalog(path)
    except CatalogError as exc:
        raise click.BadParameter(str(exc), param_hint="--catalog") from exc


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log probe diagnostics to stderr.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Check this device for signs of rooting."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print a JSON report.")
@click.option("--catalog", "catalog_path", type=click.Path(exists=True, dir_okay=False), help="YAML probe catalog.")
@click.option("--root", "fs_root", type=click.Path(exists=True, file_okay=False), help="Inspect a mounted image directory.")
@click.option("--timeout", type=click.FloatRange(min=0.1), help="Per-probe budget in seconds.")
@click.option("--parallel/--sequential", default=None, help="Run probes concurrently.")
@click.option("--skip-permission-probe", is_flag=True, help="Do not treat storage permission as evidence.")
@click.pass_context
def detect(
    ctx: click.Context,
    as_json: bool,
    catalog_path: Optional[str],
    fs_root: Optional[str],
    timeout: Optional[float],
    parallel: Optional[bool],
    skip_permission_probe: bool,
) -> None:
    """Run every probe and report the verdict.

    Exits 0 when clean, 1 when rooted, 3 on an internal error and 130 when
    interrupted.
    """

    policy = load_policy()
    overrides = {}
    if fs_root:
        overrides["fs_root"] = fs_root
    if timeout is not None:
        overrides["probe_timeout"] = timeout
    if parallel is not None:
        overrides["parallel"] = parallel
    if skip_permission_probe:
        overrides["permission_probe"] = False
    policy = dataclasses.replace(policy, **overrides)
    catalog = _catalog(catalog_path)

    try:
        result = RootDetector(catalog=catalog, policy=policy).detect()
    except KeyboardInterrupt:
        click.echo("detection cancelled", err=True)
        ctx.exit(EXIT_CANCELLED)
    except EngineError as exc:
        click.echo(f"internal error: {exc}", err=True)
        ctx.exit(EXIT_INTERNAL)
    except Exception as exc:
        _logger.exception("Detection failed unexpectedly")
        click.echo(f"internal error: {exc.__class__.__name__}: {exc}", err=True)
        ctx.exit(EXIT_INTERNAL)

    if as_json:
        click.echo(render_json(result))
    else:
        click.echo(render_text(result, verbose=ctx.obj.get("verbose", False)))
    ctx.exit(EXIT_ROOTED if result.is_rooted else EXIT_CLEAN)


@main.command()
@click.option("--catalog", "catalog_path", type=click.Path(exists=True, dir_okay=False), help="YAML probe catalog.")
def probes(catalog_path: Optional[str]) -> None:
    """List registered probes in evaluation order."""

    policy = load_policy()
    registry = build_registry(
        default_host(timeout=policy.probe_timeout, fs_root=policy.fs_root),
        _catalog(catalog_path),
        include_permission_probe=policy.permission_probe,
    )
    for probe in registry:
        click.echo(f"{probe.id:<22} {probe.description}")


if __name__ == "__main__":
    main()
