"""Local dev entrypoint for the FormForge API."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path


def _ensure_src_on_path() -> None:
    backend_dir = Path(__file__).resolve().parent
    src_dir = backend_dir / "src"
    if str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))


def _prepare_forms(log_level: str) -> int:
    """Resolve the forms directory for the server process and report problems.

    Returns the number of error-level issues found.
    """
    from formforge.config import FormForgeConfig
    from formforge.schema.validator import validate_forms_dir

    logging.basicConfig(
        level=log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger("formforge.run_api")

    config = FormForgeConfig.from_env(base_path=Path(__file__).resolve().parent.parent)
    forms_path = config.forms_path.resolve()
    # The reloader subprocess may start from another directory
    os.environ["FORMFORGE_FORMS_PATH"] = str(forms_path)

    if not forms_path.is_dir():
        logger.error("Forms directory not found at %s", forms_path)
        return 1

    issues = validate_forms_dir(forms_path)
    for issue in issues:
        log = logger.error if issue.severity == "error" else logger.warning
        log("%s", issue)
    logger.info(
        "Serving forms from %s (advisory mode %s)", forms_path, config.advisory_mode.value
    )
    return sum(1 for issue in issues if issue.severity == "error")


if __name__ == "__main__":
    _ensure_src_on_path()
    log_level = os.environ.get("FORMFORGE_LOG_LEVEL", "info")

    if _prepare_forms(log_level) and "--strict" in sys.argv[1:]:
        raise SystemExit(1)

    import uvicorn

    uvicorn.run(
        "formforge.api:app",
        host="127.0.0.1",
        port=int(os.environ.get("FORMFORGE_PORT", "8000")),
        reload=True,
        log_level=log_level,
    )
