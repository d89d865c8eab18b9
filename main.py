"""Process entrypoint: `uvicorn main:app` or `python main.py`."""

import uvicorn

from xm8detect.config import Settings
from xm8detect.main import configure_logging, create_app

settings = Settings.from_env()
configure_logging(settings.log_level)

app = create_app(settings)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
