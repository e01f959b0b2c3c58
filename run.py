import sys
from pathlib import Path

# Ensure we can import the package from ./src
ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from worktime.ui import main  # noqa: E402

if __name__ == "__main__":
    # --tray / -t additionally shows the system tray icon
    raise SystemExit(main(sys.argv[1:]))
