# This module holds the run Context

# +---------------------------+
# |   SessionStore            |   (Persisted between turns, records only)
# |---------------------------|
# | Conversation records      |
# | Transition history        |
# | State bag snapshot        |
# +---------------------------+
#
#    \    /
#     \  /
#      \/
# +------------------------------+
# |           Context            |   (Live, shared by reference for one run)
# |------------------------------|
# | State bag (caller keys)      |
# | Agent transitions            |
# | Conversation history         |
# | Pending handoff slot         |
# +------------------------------+
#         |
#         v
#   [Agents / tools / Runner]
