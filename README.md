# chief

This package provides building blocks for a PRD-driven development workflow. It operates on git repositories and keeps a record of each project.

- **`chief.config`** reads and writes the project settings in `.chief/config.yaml`. The settings are the worktree setup command and the actions to take on completion: pushing and creating a pull request.
- **`chief.store`** is a SQLite store for projects, user stories and agent logs.
- **`chief.repo`** handles branches, diffs, cloning, remote URLs and GitHub URL parsing. It also manages git worktrees under `.chief/worktrees/<prd>`.
- **`chief.gitignore`** checks whether git already ignores `.chief`, and adds `.chief/` to `.gitignore`.
- **`chief.push`** commits, pushes and deletes branches. It creates pull requests through the `gh` CLI and builds pull request titles and bodies from a PRD.
- **`chief.github`** is a small client for the GitHub REST API that covers pull requests, issues and repositories.

The git helpers run the `git` executable, which must be on your `PATH`. `create_pr` and `check_gh_cli` also use `gh`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

### Project configuration

```python
from chief import config

cfg = config.load(".")            # defaults when .chief/config.yaml is missing
cfg.worktree.setup = "npm install"
cfg.on_complete.push = True
config.save(".", cfg)             # creates .chief/ if needed
assert config.exists(".")
```

In the YAML file the keys are `worktree.setup`, `onComplete.push` and `onComplete.createPR`.

### Storing projects and stories

```python
from chief.store import Store, StoryRecord

with Store("chief.db") as store:
    project_id = store.save_project("auth", "Authentication", "JWT login", "")
    store.save_story(project_id, StoryRecord(id="US-001", title="Login", priority=1))
    for story in store.get_stories(project_id):      # ordered by priority
        print(story.id, story.title, story.passes)
    store.add_log("auth", "started")
    print(store.get_logs("auth", 10))                # ["<time>: started"], oldest first
    print(store.list_projects())                     # most recently updated first
    store.delete_project("auth")                     # also removes its stories and logs
```

`get_project` and `get_project_id` raise `KeyError` when no project has the given name. `delete_project` ignores a missing project.

### Worktrees and branches

```python
from chief import repo

path = repo.worktree_path_for_prd(".", "auth")    # ./.chief/worktrees/auth
repo.create_worktree(".", path, "chief/auth")     # reuses a valid one, replaces a stale one
print(repo.get_current_branch(path))              # chief/auth
for wt in repo.list_worktrees("."):
    print(wt.path, wt.branch, wt.head, wt.prunable)

try:
    repo.merge_branch(".", "chief/auth")
except repo.MergeConflictError as exc:            # the merge has been aborted
    print("conflicts:", exc.conflicts)
```

`detect_orphaned_worktrees(base_dir)` maps each directory under `.chief/worktrees` to its path. It returns `None` when that directory cannot be read.

### Keeping `.chief` out of version control

```python
from chief.gitignore import add_chief_to_gitignore, is_chief_ignored

if not is_chief_ignored("."):
    add_chief_to_gitignore(".")
```

`prompt_add_chief_to_gitignore()` asks the user on the terminal and returns `True` if the answer is `y` or `yes`.

### Pull requests

```python
from chief.github import GitHubClient, PullRequestRequest
from chief.repo import get_remote_url, parse_github_url

owner, name = parse_github_url(get_remote_url(".", "origin"))
client = GitHubClient("token")
pr = client.create_pull_request(
    owner, name, PullRequestRequest(title="feat(auth): Authentication", head="chief/auth", base="main")
)
print(pr.html_url)
```

When you use the `gh` CLI instead, call `chief.push.check_gh_cli()`. It returns `(installed, authenticated)`, and `create_pr(directory, branch, title, body)` returns the URL that `gh` prints. `pr_title_from_prd` and `pr_body_from_prd` accept any object that has `project`, `description` and `user_stories` attributes. Each story needs `id`, `title` and `passes`.

## Errors

- A failed git or `gh` command raises `chief.push.GitError`. `chief.repo.MergeConflictError` is a subclass of it.
- A failed GitHub API call raises `chief.github.GitHubError`. When GitHub sent a response, the error includes GitHub's message and `status_code` holds the HTTP status.
- `parse_github_url` raises `ValueError` for a URL that it cannot split into owner and repository.

## What this package does not do

This package is a library only. It installs no command-line program. It has no interactive terminal interface, no HTTP server and no agent that writes or runs PRDs. It also has no model for loading or converting PRD files. The functions that work with a PRD expect you to pass in an object that has the attributes listed above.