"""Storage, transport and desktop backends.

    backend/
    ├── base.py        # Backend protocol, PromptEntry / MnemonicRecord / SyncOutcome
    ├── files.py       # Prompt folder, config.json, prompts-meta.json
    ├── transport.py   # ssh / scp pull, push and connection checks
    ├── desktop.py     # Clipboard, keystroke insertion, autostart
    └── local.py       # LocalBackend: the three above behind one object
"""
