import logging
import os

from recalltrainer import __version__
from recalltrainer.config import LOG_LEVEL_ENV


def setup_logging():
    level = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    setup_logging()
    logging.getLogger(__name__).info("RecallTrainer %s", __version__)

    from recalltrainer.ui.app import RecallTrainerApp

    app = RecallTrainerApp()
    app.mainloop()


if __name__ == "__main__":
    main()
