import os
import sys

SECRET_MARKERS = ('KEY', 'PASSWORD', 'SECRET')


def check_env_var(var_name, required=True, default=None):
    value = os.environ.get(var_name, default)
    if required and not value:
        print(f"❌ MISSING: {var_name} is required but not set.")
        return False

    status = "✅" if value else "⚠️"
    hidden = any(marker in var_name for marker in SECRET_MARKERS)
    display_value = '******' if value and hidden else value
    print(f"{status} {var_name}: {display_value}")
    return True


def verify_environment():
    print("🔍 Checking PharmaDesk environment...")

    all_ok = True

    print("\n--- Core Security ---")
    if not check_env_var('DJANGO_SECRET_KEY'):
        all_ok = False
    if not check_env_var('ENCRYPTION_KEY'):
        all_ok = False

    print("\n--- Database ---")
    if not check_env_var('DATABASE_URL', required=False):
        print("⚠️  No DATABASE_URL found. Falling back to SQLite.")

    print("\n--- Background jobs ---")
    if not check_env_var('REDIS_URL', required=False):
        print("⚠️  REDIS_URL not set. Task reminders need a running Celery broker.")

    print("\n--- AI assistant ---")
    if not check_env_var('GEMINI_API_KEY', required=False):
        print("⚠️  GEMINI_API_KEY not set. Configure it in the admin under System settings,")
        print("   otherwise the daily briefing and knowledge base questions will fail.")
    check_env_var('GEMINI_MODEL', required=False, default='gemini-2.5-flash')

    print("\n--- Mail ---")
    check_env_var('EMAIL_BACKEND', required=False)
    check_env_var('DEFAULT_FROM_EMAIL', required=False)

    print("\n" + "=" * 30)
    if all_ok:
        print("✅ Environment looks GOOD.")
        sys.exit(0)
    print("❌ Environment has ERRORS. Please fix missing variables.")
    sys.exit(1)


if __name__ == "__main__":
    verify_environment()
