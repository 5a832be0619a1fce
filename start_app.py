#!/usr/bin/env python
"""Start the FastAPI application with proper port configuration for Railway."""
import os
import uvicorn

if __name__ == "__main__":
    # Get port from environment, default to 3000
    port = int(os.environ.get("PORT", 3000))

    print(f"Starting application on port {port}")

    uvicorn.run(
        "cart_recovery.main:app",
        host="0.0.0.0",
        port=port,
        log_level="info"
    )
