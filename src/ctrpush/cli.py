"""Command-line entry point for ctrpush."""

from __future__ import annotations

import logging
import os
import sys
import threading

import click

from ctrpush import __version__
from ctrpush.config import CtrpushConfig
from ctrpush.containers.distribute import distribute_image
from ctrpush.containers.export import export_image, remove_artifact
from ctrpush.errors import CtrpushError
from ctrpush.job import DistributionJob
from ctrpush.log_utils import configure_logging
from ctrpush.orchestration.ssh import SSHSettings
from ctrpush.orchestration.sudo import resolve_credential
from ctrpush.report import exit_code, render_report
from ctrpush.utils import parse_host_list, resolve_ssh_user

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130

EPILOG = """\b
Example:
  ctrpush -i nginx:latest -h node1,node2,node3 -u ubuntu -k ~/.ssh/id_rsa -P

\b
Alternative: set the SUDO_PASSWORD environment variable instead of -P.
For passwordless sudo, configure /etc/sudoers with:
  username ALL=(ALL) NOPASSWD:ALL
"""


@click.command(context_settings={"help_option_names": ["--help"]}, epilog=EPILOG)
@click.version_option(__version__, prog_name="ctrpush")
@click.option("-i", "--image", required=True, help="Docker image name, e.g. nginx:latest.")
@click.option("-h", "--hosts", "hosts_arg", required=True,
              help="Comma-separated list of target hosts.")
@click.option("-u", "--user", default=None, help="SSH user (default: root).")
@click.option("-k", "--key", default=None, type=click.Path(dir_okay=False),
              help="SSH private key file path.")
@click.option("-n", "--namespace", default=None, help="containerd namespace (default: k8s.io).")
@click.option("-P", "--prompt-password", is_flag=True,
              help="Prompt for the sudo password (not saved in shell history).")
@click.option("--workers", type=click.IntRange(min=1), default=None,
              help="Number of hosts processed in parallel (default: 1).")
@click.option("--timeout", "connect_timeout", type=click.IntRange(min=1), default=None,
              help="SSH connect timeout in seconds (default: 10).")
@click.option("--staging-dir", default=None, help="Remote staging directory (default: /tmp).")
@click.option("--workdir", default=".", type=click.Path(file_okay=False),
              help="Local directory for the compressed archive.")
@click.option("--strict", is_flag=True,
              help="Exit non-zero when no host fully succeeded.")
@click.option("--dry-run", is_flag=True, help="Show what would be done without executing.")
@click.option("--config", "config_path", default=None, type=click.Path(dir_okay=False),
              help="Alternate config file.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(image, hosts_arg, user, key, namespace, prompt_password, workers, connect_timeout,
         staging_dir, workdir, strict, dry_run, config_path, verbose):
    """Push a local Docker image to containerd on a set of hosts over SSH.

    The image is saved and gzipped once, copied to each host, imported
    with ``ctr images import`` and verified with ``ctr images ls``.
    Failures on one host never stop the others.
    """
    configure_logging(verbose)

    image = image.strip()
    hosts = parse_host_list(hosts_arg)
    if not image:
        raise click.UsageError("Image name must not be empty.")
    if not hosts:
        raise click.UsageError("At least one host is required.")

    try:
        config = CtrpushConfig.load(config_path)
    except FileNotFoundError as e:
        raise click.BadParameter(str(e), param_hint="--config")

    ssh_user = resolve_ssh_user(user, config)
    credential = resolve_credential(ssh_user, prompt=prompt_password, env=os.environ)
    configure_logging(verbose, credential=credential)

    settings = SSHSettings(
        user=ssh_user,
        key=key or config.ssh_key,
        connect_timeout=connect_timeout or config.connect_timeout,
        command_timeout=config.command_timeout,
    )
    job = DistributionJob.create(
        image, hosts, credential,
        namespace=namespace or config.namespace,
        ssh=settings,
        staging_dir=staging_dir or config.staging_dir,
    )

    click.echo("Starting image distribution process...")
    click.echo("Image: %s" % job.image)
    click.echo("Hosts: %s" % " ".join(h.address for h in job.hosts))
    click.echo("SSH User: %s (%s)" % (ssh_user, credential.describe()))
    click.echo("Namespace: %s" % job.namespace)

    cancel = threading.Event()
    try:
        try:
            artifact = export_image(job.image, workdir=workdir, dry_run=dry_run)
        except CtrpushError as e:
            raise click.ClickException(str(e))

        try:
            results = distribute_image(
                job, artifact,
                workers=workers or config.workers,
                cancel=cancel,
                dry_run=dry_run,
            )
        finally:
            if dry_run:
                logger.info("[dry-run] Would remove %s", artifact.local_path)
            else:
                logger.info("Cleaning up local compressed file...")
                remove_artifact(artifact)

        for line in render_report(job, results, artifact.stats):
            click.echo(line)
    finally:
        credential.clear()

    if cancel.is_set():
        click.echo("Image distribution interrupted.")
        sys.exit(EXIT_INTERRUPTED)
    click.echo("Image distribution complete!")
    sys.exit(exit_code(results, strict=strict))


if __name__ == "__main__":
    main()
