"""Command-line interface for the job board client state."""
import logging
from typing import List, Optional, Tuple

import click
import uvicorn
from rich.console import Console
from rich.table import Table

from .__main__ import build_api, build_search_service, create_app
from .config import Config, load_settings
from .delivery.notifiers import ConsoleNotifier, celebrate
from .errors import JobBoardError
from .filters import BrowseSession
from .ingest import AdminResult, ApiClient, AuthClient, UserAdminClient
from .ingest.client import ROLES
from .models import JobFiltersState, JobRecord, SALARY_CEILING, SALARY_FLOOR
from .state import LocalStateManager

console = Console()
logger = logging.getLogger(__name__)


def _manager(ctx: click.Context) -> LocalStateManager:
    """State manager for this invocation, created on first use."""
    obj = ctx.ensure_object(dict)
    if 'manager' not in obj:
        config = obj.setdefault('config', Config())
        storage_config = config.get_storage_config()
        settings = load_settings(storage_config['settings_file'])
        obj['manager'] = LocalStateManager.from_url(
            storage_config['url'], settings, echo=storage_config['echo']
        )
    return obj['manager']


def _jobs_table(title: str, jobs: List[JobRecord], saved_ids=()) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Company", style="green")
    table.add_column("Location", style="blue")
    table.add_column("Type")
    table.add_column("Salary", style="yellow")
    for job in jobs:
        marker = "★ " if job.id in saved_ids else ""
        table.add_row(
            job.id,
            marker + (job.title or ''),
            job.company or '',
            job.location or '',
            job.job_type or '',
            job.salary or '',
        )
    return table


def _filters(job_types: Tuple[str, ...], work_modes: Tuple[str, ...], experience: Tuple[str, ...],
             salary_min: Optional[int], salary_max: Optional[int]) -> JobFiltersState:
    try:
        return JobFiltersState(
            salary_range=(
                SALARY_FLOOR if salary_min is None else salary_min,
                SALARY_CEILING if salary_max is None else salary_max,
            ),
            job_types=job_types,
            work_mode=work_modes,
            experience_level=experience,
        )
    except ValueError as e:
        raise click.BadParameter(str(e))


def filter_options(func):
    """Shared filter options for commands that take a filter selection."""
    options = [
        click.option('--job-type', 'job_types', multiple=True, help='Job type (e.g., Full-time), repeatable'),
        click.option('--work-mode', 'work_modes', multiple=True,
                     type=click.Choice(['Remote', 'Hybrid', 'On-site']), help='Work mode, repeatable'),
        click.option('--experience', multiple=True, help='Experience level (e.g., Senior), repeatable'),
        click.option('--salary-min', type=int, help='Minimum salary (e.g., 100000)'),
        click.option('--salary-max', type=int, help='Maximum salary (e.g., 150000)'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option('--env-file', type=click.Path(dir_okay=False), help='Load settings from this .env file')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, env_file: Optional[str], verbose: bool):
    """JobBoard - saved jobs, comparison and search history."""
    obj = ctx.ensure_object(dict)
    if 'config' not in obj:
        obj['config'] = Config(env_file)
    level = 'DEBUG' if verbose else obj['config'].get_log_level()
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


# Saved jobs

@cli.group()
def saved():
    """Saved (bookmarked) jobs."""


@saved.command('list')
@click.pass_context
def saved_list(ctx):
    """List saved jobs."""
    manager = _manager(ctx)
    if not manager.saved.count:
        console.print("[yellow]No saved jobs yet[/yellow]")
        return
    console.print(_jobs_table(f"Saved Jobs ({manager.saved.count})", manager.saved.records()))


@saved.command('toggle')
@click.argument('job_id')
@click.option('--title', help='Job title')
@click.option('--company', help='Company name')
@click.option('--location', help='Job location')
@click.option('--type', 'job_type', help='Job type (e.g., Full-time)')
@click.option('--salary', help='Salary text')
@click.option('--url', help='Link to the posting')
@click.option('--source', help='Source board')
@click.pass_context
def saved_toggle(ctx, job_id: str, **fields):
    """Save JOB_ID, or unsave it when it is already saved."""
    manager = _manager(ctx)
    notifier = ConsoleNotifier(console)
    record = None
    if not manager.saved.is_saved(job_id):
        record = JobRecord.from_dict({'id': job_id, **fields})
    result = manager.saved.toggle(job_id, record)
    if result.was_saved:
        notifier.info(f"Removed {job_id} from saved jobs")
    elif result.milestone:
        notifier.success(celebrate(result.milestone))
    else:
        notifier.success(f"Saved {job_id}")


@saved.command('clear')
@click.confirmation_option(prompt='Remove every saved job?')
@click.pass_context
def saved_clear(ctx):
    """Remove all saved jobs."""
    _manager(ctx).saved.clear_all()
    console.print("[green]Saved jobs cleared[/green]")


# Recently viewed

@cli.group()
def recent():
    """Recently viewed jobs."""


@recent.command('list')
@click.pass_context
def recent_list(ctx):
    """List recently viewed jobs, most recent first."""
    jobs = _manager(ctx).recent.items()
    if not jobs:
        console.print("[yellow]No recently viewed jobs[/yellow]")
        return
    console.print(_jobs_table("Recently Viewed", jobs))


@recent.command('clear')
@click.pass_context
def recent_clear(ctx):
    """Forget recently viewed jobs."""
    _manager(ctx).recent.clear_all()
    console.print("[green]Recently viewed jobs cleared[/green]")


# Comparison

@cli.group()
def compare():
    """Side-by-side job comparison (up to three jobs)."""


@compare.command('list')
@click.pass_context
def compare_list(ctx):
    """Show the jobs being compared."""
    jobs = _manager(ctx).compare.items()
    if not jobs:
        console.print("[yellow]No jobs selected for comparison[/yellow]")
        return
    table = Table(title="Job Comparison")
    table.add_column("Field", style="bold")
    for job in jobs:
        table.add_column(job.title or job.id, style="cyan")
    for label, attr in (("Company", 'company'), ("Location", 'location'), ("Type", 'job_type'),
                        ("Salary", 'salary'), ("Source", 'source')):
        table.add_row(label, *[getattr(job, attr) or '-' for job in jobs])
    console.print(table)


@compare.command('add')
@click.argument('job_id')
@click.pass_context
def compare_add(ctx, job_id: str):
    """Add a saved or recently viewed job to the comparison."""
    manager = _manager(ctx)
    record = manager.saved.get(job_id)
    if record is None:
        record = next((job for job in manager.recent.items() if job.id == job_id), None)
    if record is None:
        raise click.ClickException(f"Job {job_id} is neither saved nor recently viewed")
    result = manager.compare.add(record)
    if not result.ok:
        raise click.ClickException(result.error.message)
    console.print(f"[green]Comparing {manager.compare.count} jobs[/green]")


@compare.command('remove')
@click.argument('job_id')
@click.pass_context
def compare_remove(ctx, job_id: str):
    """Remove a job from the comparison."""
    if not _manager(ctx).compare.remove(job_id):
        raise click.ClickException(f"Job {job_id} is not being compared")
    console.print(f"[green]Removed {job_id} from comparison[/green]")


@compare.command('clear')
@click.pass_context
def compare_clear(ctx):
    """Empty the comparison."""
    _manager(ctx).compare.clear_all()
    console.print("[green]Comparison cleared[/green]")


# Search history and saved searches

@cli.group()
def history():
    """Past searches."""


@history.command('list')
@click.pass_context
def history_list(ctx):
    """Show past searches, newest first."""
    entries = _manager(ctx).searches.history()
    if not entries:
        console.print("[yellow]No search history[/yellow]")
        return
    table = Table(title="Search History")
    table.add_column("Query", style="cyan")
    table.add_column("Location", style="blue")
    table.add_column("When", style="dim")
    for entry in entries:
        table.add_row(entry.query, entry.location, entry.timestamp)
    console.print(table)


@history.command('clear')
@click.pass_context
def history_clear(ctx):
    """Forget past searches."""
    _manager(ctx).searches.clear_history()
    console.print("[green]Search history cleared[/green]")


@cli.group()
def searches():
    """Named saved searches."""


@searches.command('list')
@click.pass_context
def searches_list(ctx):
    """List saved searches."""
    saved_searches = _manager(ctx).searches.saved_searches()
    if not saved_searches:
        console.print("[yellow]No saved searches[/yellow]")
        return
    table = Table(title="Saved Searches")
    table.add_column("Name", style="cyan")
    table.add_column("Query")
    table.add_column("Location", style="blue")
    table.add_column("Filters", style="magenta")
    table.add_column("Notify")
    for search in saved_searches:
        table.add_row(
            search.name,
            search.query,
            search.location,
            str(search.filters.active_count),
            "yes" if search.notify_on_new else "no",
        )
    console.print(table)


@searches.command('save')
@click.argument('name')
@click.option('--query', '-q', default='', help='Search keywords')
@click.option('--location', '-l', default='', help='Location')
@filter_options
@click.option('--notify', is_flag=True, help='Notify about new matching jobs')
@click.pass_context
def searches_save(ctx, name: str, query: str, location: str, job_types, work_modes, experience,
                  salary_min: Optional[int], salary_max: Optional[int], notify: bool):
    """Save the given search under NAME."""
    filters = _filters(job_types, work_modes, experience, salary_min, salary_max)
    try:
        result = _manager(ctx).searches.save_search(name, query, location, filters, notify)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='NAME')
    if result.duplicate_name:
        console.print(f"[yellow]A search named '{result.search.name}' already exists; both are kept[/yellow]")
    console.print(f"[green]Saved search '{result.search.name}'[/green]")


@searches.command('delete')
@click.argument('name')
@click.pass_context
def searches_delete(ctx, name: str):
    """Delete every saved search called NAME."""
    removed = _manager(ctx).searches.delete_search(name)
    if not removed:
        raise click.ClickException(f"No saved search named '{name}'")
    console.print(f"[green]Deleted {removed} saved search(es)[/green]")


# Account

def _api(ctx: click.Context) -> ApiClient:
    return build_api(ctx.obj['config'], _manager(ctx))


def _fail(e: JobBoardError) -> click.ClickException:
    return click.ClickException(e.message)


@cli.command()
@click.argument('email')
@click.password_option(confirmation_prompt=False, help='Account password')
@click.pass_context
def login(ctx, email: str, password: str):
    """Log in and keep the access token for later requests."""
    try:
        session = AuthClient(_api(ctx)).login(email, password)
    except JobBoardError as e:
        raise _fail(e)
    name = session.user.get('username') or email
    console.print(f"[green]Logged in as {name}[/green]")


@cli.command()
@click.pass_context
def logout(ctx):
    """Forget the stored access token."""
    try:
        AuthClient(_api(ctx)).logout()
    except JobBoardError as e:
        logger.warning(f"Logout request failed: {e}")
    console.print("[green]Logged out[/green]")


@cli.command()
@click.pass_context
def whoami(ctx):
    """Show the logged-in user."""
    try:
        user = AuthClient(_api(ctx)).current_user()
    except JobBoardError as e:
        raise _fail(e)
    console.print(f"{user.get('username') or user.get('email')} ({user.get('role', 'USER')})")


@cli.group()
def users():
    """User administration (admin accounts only)."""


def _admin(ctx: click.Context) -> UserAdminClient:
    api = _api(ctx)
    try:
        me = AuthClient(api).current_user()
    except JobBoardError as e:
        raise _fail(e)
    return UserAdminClient(api, current_user_id=me.get('id'))


def _report(result: AdminResult) -> None:
    if not result.success:
        raise click.ClickException(result.message)
    console.print(f"[green]{result.message}[/green]")


@users.command('list')
@click.option('--hide-inactive', is_flag=True, help='Only show active users')
@click.pass_context
def users_list(ctx, hide_inactive: bool):
    """List user accounts."""
    try:
        listing = UserAdminClient(_api(ctx)).list_users(hide_inactive=hide_inactive)
    except JobBoardError as e:
        raise _fail(e)
    if listing.warning:
        console.print(f"[yellow]{listing.warning}[/yellow]")
    table = Table(title=f"Users ({listing.active} active, {listing.inactive} inactive)")
    table.add_column("ID", style="dim")
    table.add_column("Username", style="cyan")
    table.add_column("Email", style="blue")
    table.add_column("Role", style="magenta")
    table.add_column("Active")
    for user in listing.users:
        table.add_row(
            str(user.get('id', '')),
            user.get('username') or '',
            user.get('email') or '',
            user.get('role') or '',
            "yes" if user.get('isActive') else "no",
        )
    console.print(table)


@users.command('toggle-active')
@click.argument('user_id')
@click.pass_context
def users_toggle_active(ctx, user_id: str):
    """Activate or deactivate USER_ID."""
    _report(_admin(ctx).toggle_active(user_id))


@users.command('set-role')
@click.argument('user_id')
@click.argument('role', type=click.Choice(ROLES))
@click.pass_context
def users_set_role(ctx, user_id: str, role: str):
    """Change the role of USER_ID."""
    _report(_admin(ctx).change_role(user_id, role))


@users.command('delete')
@click.argument('user_id')
@click.confirmation_option(prompt='Delete this user?')
@click.pass_context
def users_delete(ctx, user_id: str):
    """Delete USER_ID."""
    _report(_admin(ctx).delete_user(user_id))


# Browsing

@cli.command()
@click.option('--query', '-q', default='', help='Search keywords')
@click.option('--location', '-l', default='', help='Location')
@click.option('--saved-search', help='Start from this saved search')
@filter_options
@click.option('--page', type=int, default=1, help='Page number')
@click.pass_context
def browse(ctx, query: str, location: str, saved_search: Optional[str], job_types, work_modes, experience,
           salary_min: Optional[int], salary_max: Optional[int], page: int):
    """Search jobs and show one page of results."""
    manager = _manager(ctx)
    filters = _filters(job_types, work_modes, experience, salary_min, salary_max)
    if saved_search:
        search = manager.searches.find_search(saved_search)
        if search is None:
            raise click.ClickException(f"No saved search named '{saved_search}'")
        applied = manager.searches.apply_search(search)
        query, location, filters = applied.query, applied.location, applied.filters

    service = ctx.obj.get('search_service') or build_search_service(ctx.obj['config'], manager)
    manager.searches.add_search(query, location)
    session = BrowseSession(query=query, location=location, filters=filters,
                            page_size=manager.settings.page_size)
    try:
        session.go_to(page)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--page')

    results = service.search(query, location)
    if results.error is not None:
        console.print(f"[red]{results.error.message}[/red]")
    current = session.current_page(results.jobs)
    if not current.items:
        console.print("[yellow]No jobs found matching your criteria[/yellow]")
        return
    title = f"Jobs - page {current.page} of {current.total_pages} ({current.total} total)"
    saved_ids = {job.id for job in current.items if manager.saved.is_saved(job.id)}
    console.print(_jobs_table(title, current.items, saved_ids))
    if filters.active_count:
        console.print(f"[magenta]{filters.active_count} filter(s) active[/magenta]")


@cli.command()
@click.option('--host', help='Host to bind the server to')
@click.option('--port', type=int, help='Port to bind the server to')
@click.pass_context
def web(ctx, host: Optional[str], port: Optional[int]):
    """Start the local HTTP API."""
    config = ctx.obj['config']
    web_config = config.get_web_config()
    host = host or web_config['host']
    port = port or web_config['port']
    console.print(f"[green]Starting JobBoard API at http://{host}:{port}[/green]")
    uvicorn.run(create_app(manager=_manager(ctx), config=config), host=host, port=port)


if __name__ == '__main__':
    cli()
