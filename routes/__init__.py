from flask import Blueprint

# single main blueprint for everything except auth and professor (own blueprints)
main_bp = Blueprint("main", __name__)

# route modules register their views on main_bp
from . import main           # noqa: F401,E402
from . import registration   # noqa: F401,E402
from . import courses        # noqa: F401,E402
from . import exams          # noqa: F401,E402
