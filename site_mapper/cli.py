# === FILE: site_mapper/cli.py ===
#!/usr/bin/env python3
"""
Command-line entry point for the SiteMapper crawler.

Commands:
  crawl     Crawl a site breadth-first and print the discovered pages
  config    Show the effective configuration

Global options:
  --config PATH       YAML/JSON config (default: configs/default.yaml if present)
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file (stderr only if omitted)
  --log-format FORMAT Logging format string

crawl options:
  --url URL           Seed URL
  --max-depth INT     Maximum link depth from the seed
  --concurrency INT   Parallel fetches per depth layer
  --timeout SEC       Timeout of one fetch attempt
  --retries INT       Extra attempts for retryable failures
  --max-pages INT     Cap on discovered pages
  --format FMT        text (one URL per line), sitemap (XML) or json
  --output PATH       Write the output to a file instead of stdout
  --crawl-timeout SEC Cancel the crawl after SEC seconds and keep partial results

Other:
  --version, -v       Show the SiteMapper version

Example:
  site-mapper crawl --url https://example.com --max-depth 2 --format sitemap --output sitemap.xml
"""
import asyncio
import signal
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from site_mapper import __version__
from site_mapper.config import CrawlerConfig, load_config
from site_mapper.logger import init_logging
from site_mapper.report import render_json, render_sitemap, render_text, write_sitemap
from site_mapper.scanner import start_crawl

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


async def _run_crawl(cfg: CrawlerConfig, crawl_timeout):
    """Run start_crawl with SIGINT and the optional deadline wired to its cancel event."""
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    timer = loop.call_later(crawl_timeout, cancel.set) if crawl_timeout else None
    sigint = True
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
    except (NotImplementedError, RuntimeError, ValueError):
        # no signal support on this loop or outside the main thread
        sigint = False
    try:
        return await start_crawl(cfg, cancel)
    finally:
        if timer is not None:
            timer.cancel()
        if sigint:
            loop.remove_signal_handler(signal.SIGINT)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteMapper, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Path to a YAML or JSON configuration file.'
)
@click.option(
    '--log-level', 'log_level',
    default='WARNING', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Logging level'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Log file (stderr only if omitted)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Logging format string'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """SiteMapper: breadth-first same-site crawler and sitemap generator."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except (OSError, ValueError, TypeError) as e:
        print_error(f'Failed to load configuration: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.option('--url', 'url', default=None, help='Seed URL (default: https://gophercises.com)')
@click.option('--max-depth', 'max_depth', type=int, default=None, help='Maximum link depth [3]')
@click.option('--concurrency', type=int, default=None, help='Parallel fetches per layer [8]')
@click.option('--timeout', type=float, default=None, help='Timeout of one fetch attempt, seconds [10]')
@click.option('--retries', 'retry_times', type=int, default=None, help='Extra attempts on retryable failures [0]')
@click.option('--max-pages', 'max_pages', type=int, default=None, help='Cap on discovered pages')
@click.option(
    '--format', '-f', 'output_format',
    default='text', show_default=True,
    type=click.Choice(['text', 'sitemap', 'json']),
    help='Output format'
)
@click.option(
    '--output', '-o', 'output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Write output to a file instead of stdout'
)
@click.option(
    '--crawl-timeout', 'crawl_timeout',
    type=float,
    default=None,
    help='Cancel the crawl after this many seconds, keeping partial results'
)
@click.pass_context
def crawl(ctx, url, max_depth, concurrency, timeout, retry_times, max_pages,
          output_format, output, crawl_timeout):
    """Crawl the site and print the discovered same-origin pages."""
    overrides = {
        'base_url': url,
        'max_depth': max_depth,
        'concurrency': concurrency,
        'timeout': timeout,
        'retry_times': retry_times,
        'max_pages': max_pages,
    }
    data = ctx.obj['config'].model_dump(mode='json')
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        cfg = CrawlerConfig(**data)
    except ValidationError as e:
        print_error(f'Invalid options: {e}')

    try:
        result = asyncio.run(_run_crawl(cfg, crawl_timeout))
    except Exception as e:
        print_error(f'Crawl failed: {e}')

    if result.fatal is not None:
        print_error(f'Seed unreachable: {result.fatal.url} ({result.fatal.cause.reason})')

    if output_format == 'sitemap':
        if output:
            write_sitemap(result.pages, output)
        else:
            click.echo(render_sitemap(result.pages).decode('utf-8'), nl=False)
    elif output_format == 'json':
        if output:
            render_json(result, output)
        else:
            click.echo(render_json(result))
    else:
        text = render_text(result.pages)
        if output:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(text, encoding='utf-8')
        else:
            click.echo(text, nl=False)

    if output:
        click.echo(f'{len(result.pages)} pages written to {output}', err=True)
    for page_url, err in result.errors.items():
        click.secho(f'{page_url}: {err.reason}', fg='yellow', err=True)
    if result.cancelled:
        click.secho(
            f'Crawl cancelled, {len(result.pending)} discovered pages not fetched',
            fg='yellow', err=True
        )


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Show the effective configuration as JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
