import click

from .db import db, ProjectDB
from .export import write_export


def register_commands(app):
    @app.cli.command('export-project')
    @click.argument('project_id')
    @click.argument('path', type=click.Path(dir_okay=False))
    def export_project(project_id, path):
        """Write a project's JSON export to PATH."""
        project = db.session.get(ProjectDB, project_id)
        if project is None:
            raise click.ClickException(f'Project {project_id} not found')
        write_export(path, project)
        click.echo(f'Exported {project.name} to {path}')
