"""
Script to broadcast a test push notification to every registered device.

Usage:
    python scripts/send_test_notification.py
    python scripts/send_test_notification.py "Custom title" "Custom body"
"""
import asyncio
import sys
from pathlib import Path

# Add backend directory to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from ipo_alert.core.config import get_settings
from ipo_alert.core.database import SessionLocal
from ipo_alert.core.errors import DispatchProviderError
from ipo_alert.core.logger import configure_logging
from ipo_alert.services.engine import build_engine


async def main():
    title = sys.argv[1] if len(sys.argv) > 1 else "Hello World! 👋"
    body = sys.argv[2] if len(sys.argv) > 2 else "This is a test notification from IPO Alert."

    settings = get_settings()
    configure_logging(settings.log_level)
    engine = build_engine(settings, SessionLocal)
    try:
        tokens = engine.subscriber_store.list_tokens()
        if not tokens:
            print('❌ No push tokens registered')
            sys.exit(1)

        print(f'📱 Sending "{title}" to {len(tokens)} device(s)...')
        try:
            report = await engine.dispatcher.dispatch(tokens, title, body, {"type": "test"})
        except DispatchProviderError as e:
            print(f'❌ Failed: {e}')
            sys.exit(1)

        print(f'✅ Delivered to {report.delivered}/{report.attempted} device(s)')
        if report.pruned:
            print(f'🗑️  Removed {report.pruned} invalid token(s)')
        if report.failed_chunks:
            print(f'⚠️  {report.failed_chunks} batch(es) could not be sent')
    finally:
        await engine.aclose()


if __name__ == '__main__':
    asyncio.run(main())
