"""GraphQL documents used by the client.

The first line of each document is used as the query identifier in the
call ledger, so every document starts with its ``query Name(...)`` line.
"""

PAGE_SIZE = 100
BRANCH_PAGE_SIZE = 20

REPOSITORY_FIELDS_FRAGMENT = """
fragment RepositoryFields on Repository {
  name
  nameWithOwner
  url
  pushedAt
  isPrivate
  defaultBranchRef {
    name
  }
}
"""

COMMIT_FIELDS_FRAGMENT = """
fragment CommitFields on Commit {
  oid
  message
  committedDate
  author {
    name
    email
    user {
      login
    }
  }
  url
}
"""

PULL_REQUEST_FIELDS_FRAGMENT = """
fragment PullRequestFields on PullRequest {
  number
  title
  url
  createdAt
  updatedAt
  mergedAt
  state
  author {
    login
  }
}
"""

USER_INFO_QUERY = """query GetUserInfo {
  viewer {
    login
    name
    email
    bio
    company
    location
    avatarUrl
    url
    createdAt
    followers {
      totalCount
    }
    following {
      totalCount
    }
    repositories(first: 1) {
      totalCount
    }
    contributionsCollection {
      totalCommitContributions
      totalPullRequestContributions
      totalIssueContributions
      totalRepositoryContributions
    }
  }
}
"""

VIEWER_REPOSITORIES_QUERY = (
    f"""query GetRepositories($after: String) {{
  viewer {{
    repositories(first: {PAGE_SIZE}, after: $after, orderBy: {{field: PUSHED_AT, direction: DESC}}) {{
      pageInfo {{
        hasNextPage
        endCursor
      }}
      nodes {{
        ...RepositoryFields
      }}
    }}
  }}
}}
"""
    + REPOSITORY_FIELDS_FRAGMENT
)

ORGANIZATION_REPOSITORIES_QUERY = (
    f"""query GetOrganizationRepos($org: String!, $after: String) {{
  organization(login: $org) {{
    repositories(first: {PAGE_SIZE}, after: $after, orderBy: {{field: PUSHED_AT, direction: DESC}}) {{
      pageInfo {{
        hasNextPage
        endCursor
      }}
      nodes {{
        ...RepositoryFields
      }}
    }}
  }}
}}
"""
    + REPOSITORY_FIELDS_FRAGMENT
)

# Branches with the first page of each branch's history.
REPOSITORY_BRANCHES_QUERY = (
    f"""query GetRepositoryBranches($owner: String!, $name: String!, $after: String, $since: GitTimestamp) {{
  repository(owner: $owner, name: $name) {{
    refs(refPrefix: "refs/heads/", first: {BRANCH_PAGE_SIZE}, after: $after) {{
      pageInfo {{
        hasNextPage
        endCursor
      }}
      nodes {{
        name
        target {{
          ... on Commit {{
            history(first: {PAGE_SIZE}, since: $since) {{
              pageInfo {{
                hasNextPage
                endCursor
              }}
              nodes {{
                ...CommitFields
              }}
            }}
          }}
        }}
      }}
    }}
  }}
}}
"""
    + COMMIT_FIELDS_FRAGMENT
)

# Follow-up pages of a single branch's history.
BRANCH_HISTORY_QUERY = (
    f"""query GetMoreBranchCommits($owner: String!, $name: String!, $branch: String!, $cursor: String!, $since: GitTimestamp) {{
  repository(owner: $owner, name: $name) {{
    ref(qualifiedName: $branch) {{
      target {{
        ... on Commit {{
          history(first: {PAGE_SIZE}, after: $cursor, since: $since) {{
            pageInfo {{
              hasNextPage
              endCursor
            }}
            nodes {{
              ...CommitFields
            }}
          }}
        }}
      }}
    }}
  }}
}}
"""
    + COMMIT_FIELDS_FRAGMENT
)

REPOSITORY_PULL_REQUESTS_QUERY = (
    f"""query GetRepositoryPRs($owner: String!, $name: String!, $after: String, $orderField: IssueOrderField!) {{
  repository(owner: $owner, name: $name) {{
    pullRequests(first: {PAGE_SIZE}, after: $after, orderBy: {{field: $orderField, direction: DESC}}) {{
      pageInfo {{
        hasNextPage
        endCursor
      }}
      nodes {{
        ...PullRequestFields
      }}
    }}
  }}
}}
"""
    + PULL_REQUEST_FIELDS_FRAGMENT
)


def query_identifier(query: str) -> str:
    """Get the identifier of a query document (its first non-empty line)."""
    for line in query.strip().splitlines():
        if line.strip():
            return line.strip()
    return ""
