"""Calendar domain - Personal calendar events, shared calendar projections and spaces"""
