"""
Run the Order Service with uvicorn.

    python -m order_service
    order-service
"""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "order_service.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
