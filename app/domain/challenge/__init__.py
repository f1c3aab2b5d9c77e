"""Challenge domain - waitlisted, capacity-bounded registration"""
