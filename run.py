#!/usr/bin/env python3
"""
gpt-cli - Main Entry Point

Usage:
    python run.py chat [WORDS...] [-p PRESET] [-s SYSTEM] [-u USER] [-i IMAGES] [-m MODEL]
                       [-f FILES] [--collect] [--history NAME] [-I] [-t SECONDS] [-d]
    python run.py show-history NAME
    python run.py files upload PATH... | list | delete [--id ID | --name PATTERN]
    python run.py vector-store create NAME | list | delete ID | add-file ID FILE_ID...
                               | upload-and-add PATH... [--name NAME]
    python run.py assistant create --name NAME [...] | chat [--id ID | --name NAME] [-u MESSAGE]

Equivalent to the installed ``gpt-cli`` command.
"""

from gpt_cli.cli import main

if __name__ == "__main__":
    main()
