from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from pharmadesk.auth import add_member
from pharmadesk.exceptions import PharmadeskError
from pharmadesk.models import Member, Organization


class Command(BaseCommand):
    help = 'Create a pharmacy organization together with its first admin member'

    def add_arguments(self, parser):
        parser.add_argument('name', help='Pharmacy name')
        parser.add_argument('--admin-email', required=True, help='E-mail address of the first admin')
        parser.add_argument('--admin-name', default='Administrator', help='Display name of the first admin')
        parser.add_argument('--password', help='Initial password (generated when omitted)')

    def handle(self, *args, **options):
        name = options['name'].strip()
        if not name:
            raise CommandError('Organization name must not be empty')

        try:
            with transaction.atomic():
                organization = Organization.objects.create(name=name)
                member, password = add_member(
                    organization,
                    options['admin_name'],
                    options['admin_email'],
                    role=Member.ROLE_ADMIN,
                    password=options.get('password'),
                )
        except PharmadeskError as e:
            raise CommandError(str(e))

        self.stdout.write(self.style.SUCCESS(f"Created organization '{organization.name}' ({organization.slug})"))
        self.stdout.write(f"  Admin: {member.email}")
        self.stdout.write(f"  Password: {password}")
        self.stdout.write(self.style.WARNING("  The password must be changed at first sign-in."))
