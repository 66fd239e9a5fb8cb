import os
import sys
import tempfile
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

# The stores open their sqlite file at import time; point them at a scratch file first.
os.environ["SERVICEFINDER_DB_PATH"] = str(Path(tempfile.mkdtemp(prefix="servicefinder-tests-")) / "servicefinder.sqlite3")
