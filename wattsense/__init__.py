"""WattSense Engine — energy monitoring budgets and usage alerts."""
