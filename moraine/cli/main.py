"""
moraine CLI - inspect and synthesize stacks.
"""

import importlib.util
import logging
import os
import sys
from typing import Any

import click

from moraine.core.grants import Grant
from moraine.core.stack import Stack

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """
    moraine - declare serverless stacks in Python and synthesize them.

    STACK_FILE arguments are Python files that define a Stack at module
    level.
    """
    level = "DEBUG" if verbose else os.getenv("MORAINE_LOG_LEVEL", "WARNING").upper()
    if level not in LOG_LEVELS:
        click.echo(f"Unknown MORAINE_LOG_LEVEL '{level}', using WARNING", err=True)
        level = "WARNING"
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("stack_file", type=click.Path(exists=True))
@click.option("--stack", "-s", "stack_name", help="Stack to use (if multiple in file)")
def plan(stack_file: str, stack_name: str):
    """
    Show the provisioning order of a stack.

    Example:
        moraine plan stacks/app.py
    """
    stack = _require_stack(stack_file, stack_name)

    try:
        order = stack.plan()
    except Exception as e:
        click.echo(f"✗ Planning failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"\n Stack: {stack.name}")
    click.echo(f"{'=' * 50}")
    for i, entity in enumerate(order, 1):
        if isinstance(entity, Grant):
            click.echo(f"  {i}. {entity!r}")
        else:
            click.echo(f"  {i}. {entity.kind.value} {entity.logical_id}")


@cli.command()
@click.argument("stack_file", type=click.Path(exists=True))
@click.option("--stack", "-s", "stack_name", help="Stack to use (if multiple in file)")
@click.option("--format", type=click.Choice(["yaml", "json"]), default="yaml")
def synth(stack_file: str, stack_name: str, format: str):
    """
    Print the stack definition for diffing between deployments.

    Example:
        moraine synth stacks/app.py > stack.yaml
        moraine synth stacks/app.py --format json
    """
    from moraine.core.synth import to_json, to_yaml

    stack = _require_stack(stack_file, stack_name)

    try:
        graph = stack.build()
        output = to_json(graph) if format == "json" else to_yaml(graph)
    except Exception as e:
        click.echo(f"✗ Synthesis failed: {e}", err=True)
        sys.exit(1)

    click.echo(output)


@cli.command()
@click.argument("stack_file", type=click.Path(exists=True))
@click.option("--stack", "-s", "stack_name", help="Stack to use (if multiple in file)")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True),
    help="YAML stack configuration with an aws section",
)
def template(stack_file: str, stack_name: str, config_file: str):
    """
    Render the stack as a CloudFormation template.

    Example:
        moraine template stacks/app.py --config prod.yaml
    """
    from moraine.config.provider import load_config
    from moraine.providers.aws import CloudFormationBackend

    stack = _require_stack(stack_file, stack_name)

    try:
        config = load_config(config_file) if config_file else stack.config
        backend = CloudFormationBackend(
            config=config.aws if config else None,
            description=config.description if config else None,
        )
        stack.materialize(backend)
    except Exception as e:
        click.echo(f"✗ Template rendering failed: {e}", err=True)
        sys.exit(1)

    click.echo(backend.to_json())


@cli.command()
@click.argument("stack_file", type=click.Path(exists=True))
@click.option("--stack", "-s", "stack_name", help="Stack to use (if multiple in file)")
def validate(stack_file: str, stack_name: str):
    """
    Validate a stack without rendering anything.

    Example:
        moraine validate stacks/app.py
    """
    stack = _require_stack(stack_file, stack_name)

    try:
        graph = stack.build()
        stack.plan()
    except Exception as e:
        click.echo(f"✗ Validation failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"✓ Stack '{stack.name}' is valid ({graph!r})")


def _require_stack(stack_file: str, stack_name: str | None) -> Stack:
    try:
        stack = _load_stack(stack_file, stack_name)
    except Exception as e:
        click.echo(f"✗ Could not load {stack_file}: {e}", err=True)
        sys.exit(1)

    if stack is None:
        click.echo("Error: Could not find a stack in file", err=True)
        sys.exit(1)
    return stack


def _load_stack(stack_file: str, stack_name: str | None = None) -> Any:
    """
    Load a stack from a Python file.

    Args:
        stack_file: Path to the Python file
        stack_name: Optional attribute name or Stack.name to pick

    Returns:
        The Stack or None if not found
    """
    spec = importlib.util.spec_from_file_location("moraine_stack_module", stack_file)
    module = importlib.util.module_from_spec(spec)
    sys.modules["moraine_stack_module"] = module
    spec.loader.exec_module(module)

    for attr_name in dir(module):
        obj = getattr(module, attr_name)
        if not isinstance(obj, Stack):
            continue
        if stack_name is None or stack_name in (attr_name, obj.name):
            return obj

    return None


if __name__ == "__main__":
    cli()
