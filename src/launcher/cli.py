import logging
import os
from typing import List, Optional

import click

from . import build_marker, config, env_file, reconcile, scaffold, util


def reconciler_options(fn):
    "options shared by run and status"
    options = [
        util.app_dir_option(),
        click.option(
            "--env-file",
            "env_file_path",
            type=click.Path(dir_okay=False),
            envvar="LAUNCHER_ENV_FILE",
            help="Variable file to load. Defaults to APP_DIR/.env.",
        ),
        click.option(
            "--build-command",
            default=config.DEFAULT_BUILD_COMMAND,
            show_default=True,
            envvar="LAUNCHER_BUILD_COMMAND",
            help="Command run when the app needs a build.",
        ),
        click.option(
            "--start-command",
            default=config.DEFAULT_START_COMMAND,
            show_default=True,
            envvar="LAUNCHER_START_COMMAND",
            help="Command that starts the server.",
        ),
        click.option(
            "--port",
            type=int,
            default=config.DEFAULT_PORT,
            show_default=True,
            envvar="LAUNCHER_PORT",
            help="PORT given to the server unless the environment already sets one.",
        ),
        click.option(
            "--diagnostic-patterns",
            callback=util.parse_csv,
            envvar="LAUNCHER_DIAGNOSTIC_PATTERNS",
            help="Comma separated name fragments of variables to list after loading. "
            f"Default: {','.join(env_file.DEFAULT_DIAGNOSTIC_PATTERNS)}",
        ),
        click.option(
            "--rebuild-stale",
            is_flag=True,
            default=False,
            envvar="LAUNCHER_REBUILD_STALE",
            help="Rebuild when .next was not built from the current sources, "
            "instead of trusting any existing .next directory.",
        ),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


@click.group()
@click.option("--verbose", is_flag=True, default=False, help="Log debug messages.")
def cli(verbose):
    """Load runtime variables, build the Next.js app if needed and start it."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command()
@reconciler_options
@click.option(
    "--halt-on-build-failure",
    is_flag=True,
    default=False,
    envvar="LAUNCHER_HALT_ON_BUILD_FAILURE",
    help="Exit without starting the server when the build fails.",
)
@click.option(
    "--exec/--no-exec",
    "exec_server",
    default=True,
    show_default=True,
    envvar="LAUNCHER_EXEC",
    help="Replace this process with the server, or run it as a child and exit with its code.",
)
def run(
    app_dir,
    env_file_path,
    build_command,
    start_command,
    port,
    diagnostic_patterns,
    rebuild_stale,
    halt_on_build_failure,
    exec_server,
):
    """Run the startup sequence once.

    Examples:

    As a container entrypoint, with the app in /app and variables in /app/.env:
    $ launcher run

    With a custom package manager:
    $ launcher run --build-command "yarn build" --start-command "yarn start"

    Refuse to serve a broken build:
    $ launcher run --halt-on-build-failure
    """
    try:
        launcher_config = config.make_config(
            app_dir,
            env_file_path,
            build_command,
            start_command,
            port,
            diagnostic_patterns,
            rebuild_stale=rebuild_stale,
            halt_on_build_failure=halt_on_build_failure,
            exec_server=exec_server,
        )
        returncode = reconcile.reconcile(launcher_config)
    except (ValueError, reconcile.BuildFailed) as err:
        raise click.ClickException(str(err)) from err
    except OSError as err:
        raise click.ClickException(f"Could not start server: {err}") from err
    click.get_current_context().exit(returncode)


@cli.command()
@reconciler_options
def status(
    app_dir,
    env_file_path,
    build_command,
    start_command,
    port,
    diagnostic_patterns,
    rebuild_stale,
):
    """Show what run would do, without changing anything."""
    try:
        launcher_config = config.make_config(
            app_dir,
            env_file_path,
            build_command,
            start_command,
            port,
            diagnostic_patterns,
            rebuild_stale=rebuild_stale,
            halt_on_build_failure=False,
            exec_server=False,
        )
    except ValueError as err:
        raise click.ClickException(str(err)) from err

    variables = env_file.read_env_file(launcher_config.env_file_path)
    if variables is None:
        click.echo(f"env_file={launcher_config.env_file_path} (missing)")
    else:
        click.echo(f"env_file={launcher_config.env_file_path} ({len(variables)} variables)")
        environ = env_file.merge_environ(os.environ, variables)
        for line in env_file.matching_variables(environ, launcher_config.diagnostic_patterns):
            click.echo(f"  {line}")

    # always inspect here, status is not on the startup path
    build_status = build_marker.get_build_status(launcher_config.app_dir)
    click.echo(f"build={build_status.state}")
    if build_status.manifest:
        click.echo(f"  completed_at={build_status.manifest.get('completed_at')}")
    will_build = build_marker.needs_build(build_status, launcher_config.rebuild_stale)
    click.echo(f"will_build={'true' if will_build else 'false'}")
    click.echo(f"start_command={' '.join(launcher_config.start_command)}")


@cli.command(name="scaffold")
@click.argument("output_dir", type=click.Path(file_okay=False), default=".")
@click.option("--service-name", default="web", show_default=True)
@click.option("--node-image", default=scaffold.DEFAULT_NODE_IMAGE, show_default=True)
@click.option(
    "--launcher-requirement",
    default=scaffold.DEFAULT_LAUNCHER_REQUIREMENT,
    show_default=True,
    help="pip requirement used to install the launcher into the image.",
)
@click.option("--port", type=int, default=config.DEFAULT_PORT, show_default=True)
@click.option("--overwrite", is_flag=True, default=False, help="Replace existing files.")
def scaffold_command(
    output_dir: str,
    service_name: str,
    node_image: str,
    launcher_requirement: str,
    port: int,
    overwrite: bool,
):
    """Write a Dockerfile and docker-compose.yml that use the launcher as entrypoint."""
    try:
        paths: List[str] = scaffold.write_templates(
            output_dir,
            service_name,
            node_image=node_image,
            launcher_requirement=launcher_requirement,
            port=port,
            overwrite=overwrite,
        )
    except ValueError as err:
        raise click.ClickException(str(err)) from err
    for path in paths:
        click.echo(f"Wrote {path}")


def main(argv: Optional[List[str]] = None):
    logging.basicConfig(level=logging.INFO)
    cli(args=argv)


if __name__ == "__main__":
    main()
