import sys

from sf_jira_bridge import main

sys.exit(main())
