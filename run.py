# run.py: launcher for the BOSS announcement bot
# Works from a plain checkout (no pip install) and prints diagnostics if the package is missing.

import os, sys

ROOT = os.path.abspath(os.path.dirname(__file__))
sys.path.insert(0, ROOT)  # ensure repo root is importable

def _die(msg):
    print("========== LAUNCH DIAGNOSTICS ==========")
    print(f"CWD: {os.getcwd()}")
    print(f"ROOT: {ROOT}")
    try:
        print("Top-level entries:", os.listdir(ROOT))
    except OSError as e:
        print("listdir failed:", e)
    print(msg)
    print("========================================")
    raise SystemExit(1)

try:
    from boss_bot.main import main
except ModuleNotFoundError as e:
    if e.name and e.name.split(".")[0] == "boss_bot":
        _die("Could not import boss_bot.main. Ensure /app/boss_bot/__init__.py and /app/boss_bot/main.py exist.")
    raise

if __name__ == "__main__":
    main()
