import os
import sys

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'pharmadesk_project.settings')

if __name__ == '__main__':
    from django.core.management import execute_from_command_line
    if len(sys.argv) > 1:
        execute_from_command_line(sys.argv)
    else:
        execute_from_command_line(['main.py', 'runserver', '0.0.0.0:5000'])
