"""Run the operator with ``python -m issue_operator``"""

import uvicorn

from issue_operator.config import settings


def main() -> None:
    uvicorn.run(
        "issue_operator.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
