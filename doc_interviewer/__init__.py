"""Doc interviewer: analyze a codebase, ask, then write a PRD or TSD."""
