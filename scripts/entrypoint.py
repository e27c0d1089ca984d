import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("entrypoint")


def main() -> None:
  """Replace this process with uvicorn so it receives signals directly."""
  port = os.getenv("PORT", "8000")
  logger.info("Starting ocrbase on port %s...", port)
  # A single worker: the notification bus is in-process, so every subscriber must share it.
  args = ["uvicorn", "ocrbase.main:app", "--host", "0.0.0.0", "--port", port, "--workers", "1", "--no-server-header"]
  os.execvp("uvicorn", args)


if __name__ == "__main__":
  main()
