import logging
import sys

from config import HOST, PORT, LOG_LEVEL


def setup_logging(level: str = LOG_LEVEL) -> None:
    root = logging.getLogger()
    if not root.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s'))
        root.addHandler(h)
    root.setLevel(level)


if __name__ == '__main__':
    setup_logging()
    from webapp import app

    app.logger.info(f"[main] serving edge IP list on {HOST}:{PORT}")
    app.run(host=HOST, port=PORT, threaded=True)
