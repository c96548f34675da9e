"""HTTP service around ``mood_engine``: storage, auth, classifiers, LLM, SMS."""
