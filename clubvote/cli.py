# clubvote/cli.py

# Bootstrap commands: `flask --app clubvote create-admin admin "Jane Doe" jane@example.com 'Secret...'`

import click
from flask.cli import with_appcontext

from clubvote.errors import InputError
from clubvote.security.tokens import generate_random_code
from clubvote.services import get_services


def _new_id(prefix, now):
    return f"{prefix}_{now}_{generate_random_code(6)}"


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create the election status document with its defaults."""
    status = get_services().election.status()
    click.echo(f"Database ready, election status: {status['label']}")


@click.command('create-admin')
@with_appcontext
@click.argument('username')
@click.argument('name')
@click.argument('email')
@click.argument('password', required=False)
def create_admin_command(username, name, email, password):
    """Create an admin who must change the password on first login.

    Without PASSWORD a random one is generated and printed once.
    """
    services = get_services()
    if services.store.find_by('admins', 'username', username):
        click.echo(f"Admin {username} already exists.")
        return
    if not password:
        password = services.passwords.generate_secure_password()
        click.echo(f"Generated password: {password}")

    now = services.clock()
    services.store.create('admins', {
        'id': _new_id('admin', now),
        'username': username,
        'password_hash': services.passwords.hash_password(password, enforce_policy=False),
        'is_default_password': True,
        'name': services.validator.sanitize_string(name, max_length=120),
        'email': email,
        'is_active': True,
        'created_at': now,
        'updated_at': now,
    })
    click.echo(f"Admin {username} created successfully.")


@click.command('add-member')
@with_appcontext
@click.argument('name')
@click.argument('phone_number')
@click.argument('membership_number')
@click.option('--ineligible', is_flag=True, help='Register the member without voting rights.')
def add_member_command(name, phone_number, membership_number, ineligible):
    services = get_services()
    try:
        phone_number = services.validator.validate_phone_number(phone_number)
    except InputError as e:
        raise click.ClickException(e.message)
    if services.store.find_by('members', 'phone_number', phone_number):
        raise click.ClickException(f"A member with phone number {phone_number} already exists.")
    if services.store.find_by('members', 'membership_number', membership_number):
        raise click.ClickException(f"Membership number {membership_number} is already registered.")

    now = services.clock()
    member = services.store.create('members', {
        'id': _new_id('member', now),
        'name': services.validator.sanitize_string(name, max_length=120),
        'phone_number': phone_number,
        'membership_number': membership_number,
        'is_eligible': not ineligible,
        'created_at': now,
        'updated_at': now,
    })
    click.echo(f"Member {member['id']} created.")


@click.command('add-position')
@with_appcontext
@click.argument('name')
@click.option('--description', default='')
def add_position_command(name, description):
    services = get_services()
    now = services.clock()
    position = services.store.create('positions', {
        'id': _new_id('position', now),
        'name': services.validator.sanitize_string(name, max_length=120),
        'description': services.validator.sanitize_string(description, max_length=2000),
        'is_active': True,
        'created_at': now,
        'updated_at': now,
    })
    click.echo(f"Position {position['id']} created.")


@click.command('add-candidate')
@with_appcontext
@click.argument('position_id')
@click.argument('name')
@click.option('--photo', default=None)
@click.option('--info', default='')
def add_candidate_command(position_id, name, photo, info):
    services = get_services()
    if services.store.find_by('positions', 'id', position_id) is None:
        raise click.ClickException(f"Unknown position {position_id}")

    now = services.clock()
    candidate = services.store.create('candidates', {
        'id': _new_id('candidate', now),
        'name': services.validator.sanitize_string(name, max_length=120),
        'position_id': position_id,
        'photo': photo,
        'info': services.validator.sanitize_string(info, max_length=2000),
        'is_active': True,
        'created_at': now,
        'updated_at': now,
    })
    click.echo(f"Candidate {candidate['id']} created.")


def register_commands(app):
    for command in (init_db_command, create_admin_command, add_member_command,
                    add_position_command, add_candidate_command):
        app.cli.add_command(command)
