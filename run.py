#!/usr/bin/env python3
"""
Simple script to run the Cybake Bridge server
"""

from cybake_bridge.config import get_settings
from cybake_bridge.main import main

if __name__ == "__main__":
    config = get_settings()

    print("Starting Cybake Bridge...")
    print(f"Server will be available at: http://{config.HOST}:{config.PORT}")
    print(f"API Documentation: http://{config.HOST}:{config.PORT}/docs")
    print(f"Debug mode: {config.DEBUG}")
    print("-" * 50)

    main()
