from datetime import datetime, timezone
from pathlib import Path

from fastapi.templating import Jinja2Templates

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

# Initialize templates once
templates = Jinja2Templates(directory=str(TEMPLATE_DIR))
templates.env.globals["now"] = lambda: datetime.now(timezone.utc)
