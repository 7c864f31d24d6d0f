"""
strongbox core package.

This version provides:
- A crash-safe lifecycle manager for one SQLCipher store (`strongbox.database`)
- The collaborators it talks to: preferences (`strongbox.preferences`) and
  the secret vault (`strongbox.vault`)
- A minimal Typer-based CLI (`strongbox.cli`)

Configuration:
- Shared, project-wide filesystem anchors and constants live in
  `strongbox.global_config`.
- Per-manager knobs live in `strongbox.database.connection.StoreSettings`.
"""
