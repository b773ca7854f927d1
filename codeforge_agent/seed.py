"""Starter project loaded into a fresh workspace."""

from .vfs import ROOT_PATH, Tree, make_file, make_folder

INDEX_TSX = """import React from "react";

function App() {
  return <div>Hello CodeForge!</div>;
}

export default App;"""

STYLES_CSS = """.container {
  max-width: 1200px;
  margin: 0 auto;
}"""

PACKAGE_JSON = """{
  "name": "my-project",
  "version": "1.0.0",
  "dependencies": {
    "react": "^18.0.0"
  }
}"""


def initial_file_system(root: str = ROOT_PATH) -> Tree:
    src = make_folder(
        f"{root}/src",
        children=(
            make_file(f"{root}/src/index.tsx", INDEX_TSX, node_id="file-1"),
            make_file(f"{root}/src/styles.css", STYLES_CSS, node_id="file-2"),
        ),
        node_id="folder-2",
    )
    project = make_folder(
        root,
        children=(src, make_file(f"{root}/package.json", PACKAGE_JSON, node_id="file-3")),
        expanded=True,
        node_id="folder-1",
    )
    return (project,)
