#!/usr/bin/env python3
"""
CropAI - Crop disease detection
Main entry point for the application.
"""

from cropai.cli import main

if __name__ == "__main__":
    main()
