"""Hooks of the asyncapi-markdown template."""

import json


def write_manifest(generator, **kwargs):
    # Only meaningful when files are written to disk.
    if generator.output.value != "fs":
        return
    files = sorted(generator.result.rendered_files + generator.result.copied_files)
    (generator.target_dir / ".generated.json").write_text(json.dumps(files, indent=2) + "\n", encoding="utf-8")


hooks = {"generate:after": [write_manifest]}
