import asyncio
import logging
import threading
from typing import Any, Coroutine, TypeVar

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

T = TypeVar("T")


class BackgroundLoop:
    """
    Runs one asyncio event loop on a daemon thread so synchronous callers,
    such as UI script threads, can share it.
    """

    def __init__(self, name: str = "quantum-archives-loop"):
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self.loop.run_forever, name=name, daemon=True)
        self.thread.start()
        logging.info(f"Started background event loop on thread {name}.")

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Blocks the calling thread until the coroutine finishes on the shared loop."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result()

    def close(self):
        """Stops the loop, joins its thread and releases the loop."""
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.thread.join()
        self.loop.close()
        logging.info("Closed background event loop.")
