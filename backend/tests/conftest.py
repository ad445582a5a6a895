import os
import sys
from pathlib import Path


# Keep tests deterministic and local-only.
os.environ["WORDNEST_SKIP_DOTENV"] = "1"
os.environ["WORDNEST_LLM_BACKEND"] = "mock"
os.environ["WORDNEST_LLM_TIMEOUT_SECONDS"] = "5"
os.environ["WORDNEST_LLM_MAX_RETRIES"] = "0"
os.environ["WORDNEST_SYNC_PROCESSING"] = "1"
os.environ["WORDNEST_PUBLISH_WEBHOOK_URL"] = ""
os.environ["WORDNEST_STORY_RETENTION"] = "3"
os.environ["GEMINI_API_KEY"] = ""

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

TEST_DB_PATH = BACKEND_ROOT / "test_wordnest.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
if TEST_DB_PATH.exists():
    TEST_DB_PATH.unlink()
