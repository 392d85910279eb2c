# Click-based CLI entry point

import logging
import sys

import click
import requests

from . import config
from .config import Options
from .domain import compute_domain
from .errors import DomainConflict, LocalCaddyError
from .reconcile import Conflict, wire_domain

logger = logging.getLogger("localcaddy")


def configure_logging(verbose):
    level = getattr(logging, config.LOG_LEVEL, logging.WARNING)
    if verbose:
        level = min(level, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")


def domain_options(f):
    """Options shared by every command that needs to compute the domain"""
    f = click.option("--name-source", type=click.Choice(config.NAME_SOURCES), default=config.NAME_SOURCE,
                     show_default=True, help="Subdomain source when no --domain is given")(f)
    f = click.option("--tld", default=config.TLD, show_default=True, help="Top-level domain")(f)
    f = click.option("--domain", default=config.DOMAIN, help="Explicit domain, overrides --name-source/--tld")(f)
    f = click.option("--cwd", type=click.Path(file_okay=False), default=None,
                     help="Project directory (defaults to the current one)")(f)
    return f


@click.group()
def main():
    """localcaddy - stable HTTPS domains for local dev servers via Caddy."""
    pass


@main.command()
@click.option("--port", type=int, required=True, help="Port the local dev server is listening on")
@domain_options
@click.option("--admin-url", default=config.ADMIN_URL, show_default=True, help="Caddy admin API base URL")
@click.option("--server-id", default=config.SERVER_ID, show_default=True, help="apps.http server id to use/create")
@click.option("--listen", default=config.LISTEN, show_default=True, help="Comma-separated listen addresses")
@click.option("--fail-on-active-domain/--no-fail-on-active-domain", default=config.FAIL_ON_ACTIVE_DOMAIN,
              show_default=True, help="Fail if the domain already points at another active port")
@click.option("--insert-first/--append", default=config.INSERT_FIRST, show_default=True,
              help="Insert new routes before existing ones")
@click.option("--api-token", default=config.API_TOKEN, help="Bearer token for the admin API")
@click.option("--hosts-file", default=config.HOSTS_FILE, show_default=True, help="Hosts file checked for .local domains")
@click.option("-v", "--verbose", is_flag=True, default=config.VERBOSE, help="Log what is being changed")
def up(port, name_source, tld, domain, cwd, admin_url, server_id, listen, fail_on_active_domain,
       insert_first, api_token, hosts_file, verbose):
    """Route the project's domain to the dev server on PORT."""
    configure_logging(verbose)
    options = Options(
        admin_url=admin_url,
        server_id=server_id,
        listen=config.split_listen(listen),
        name_source=name_source,
        tld=tld,
        domain=domain,
        fail_on_active_domain=fail_on_active_domain,
        insert_first=insert_first,
        verbose=verbose,
        api_token=api_token,
        hosts_file=hosts_file,
        cwd=cwd,
    )
    logger.info(f"Caddy admin: {options.admin_url}, server '{options.server_id}', dev port {port}")

    try:
        outcome = wire_domain(port, options)
    except DomainConflict as e:
        logger.error(f"❌ {e}")
        click.echo(f"[localcaddy] {e}", err=True)
        sys.exit(1)
    except LocalCaddyError as e:
        click.echo(f"[localcaddy] setup failed: {e}", err=True)
        sys.exit(1)
    except requests.RequestException as e:
        click.echo(f"[localcaddy] setup failed: could not reach Caddy admin API at {options.admin_url} ({e})", err=True)
        sys.exit(1)

    if isinstance(outcome, Conflict):
        click.echo(f"[localcaddy] {outcome.domain} left pointing at port {outcome.active_port}", err=True)


@main.command("domain")
@domain_options
def show_domain(name_source, tld, domain, cwd):
    """Print the domain this project would get."""
    click.echo(compute_domain(domain=domain, name_source=name_source, tld=tld, cwd=cwd))


if __name__ == "__main__":
    main()
