import os
import sys
import logging
from pathlib import Path
from dotenv import load_dotenv, find_dotenv
from streamlit.web import cli as stcli

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

APP_PATH = Path(__file__).parent / "app.py"


def main():
    """
    The main entry point for the Quantum Archives research assistant.
    """
    # Load environment variables from .env file
    load_dotenv(find_dotenv())

    if not os.getenv("GOOGLE_API_KEY"):
        logging.error("GOOGLE_API_KEY environment variable not set. Paper discovery and chat will fail.")

    logging.info("Starting the Quantum Archives UI...")
    sys.argv = ["streamlit", "run", str(APP_PATH)]
    sys.exit(stcli.main())


if __name__ == "__main__":
    main()
