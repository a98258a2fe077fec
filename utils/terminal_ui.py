import sys
import time
import threading
from contextlib import contextmanager, nullcontext

# --------- ANSI COLORS ----------
class Color:
    RESET = "\033[0m"
    DIM = "\033[2m"
    BOLD = "\033[1m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


def color_print(text, color=Color.RESET, stream=None):
    out = stream or sys.stdout
    if out.isatty():
        out.write(f"{color}{text}{Color.RESET}\n")
    else:
        out.write(f"{text}\n")
    out.flush()


# --------- SPINNER ----------
_SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

class Spinner:
    def __init__(self, text="", interval=0.1, color=Color.CYAN):
        self.text = text
        self.interval = interval
        self.color = color
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._spin, daemon=True)
        self._animated = sys.stdout.isatty()

    def _spin(self):
        i = 0
        while not self._stop.is_set():
            frame = _SPINNER_FRAMES[i % len(_SPINNER_FRAMES)]
            sys.stdout.write(f"\r{self.color}{frame} {self.text}{Color.RESET}")
            sys.stdout.flush()
            self._stop.wait(self.interval)
            i += 1

    def start(self):
        if self._animated:
            self._thread.start()

    def stop(self, final_text=None, success=True):
        self._stop.set()
        if self._thread.is_alive():
            self._thread.join()
        symbol = "✓" if success else "✗"
        msg = final_text or self.text
        if self._animated:
            color = Color.GREEN if success else Color.RED
            sys.stdout.write(f"\r{color}{symbol} {msg}{Color.RESET}\n")
        else:
            sys.stdout.write(f"{symbol} {msg}\n")
        sys.stdout.flush()


# --------- CONTEXT MANAGER ----------
@contextmanager
def stage(text, *, color=Color.CYAN):
    spinner = Spinner(text=text, color=color)
    spinner.start()
    started = time.perf_counter()
    try:
        yield
        spinner.stop(f"{text} ({time.perf_counter() - started:.1f}s)", success=True)
    except Exception:
        spinner.stop(text, success=False)
        raise


def maybe_stage(text, enabled=True):
    return stage(text) if enabled else nullcontext()
