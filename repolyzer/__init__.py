"""Repo-lyzer: analyze GitHub repositories from the terminal.

Fetches repository metadata, commits, contributors, languages and the file
tree from the GitHub REST API and scores them:
- Health score from activity, description and open-issue load
- Bus factor and concentration risk from contributor commit counts
- Maturity score and level from age, popularity and team size
"""

__version__ = "1.0.0"
