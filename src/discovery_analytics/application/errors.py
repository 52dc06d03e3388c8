class AnalyticsError(Exception):
    pass

class ArchiveError(AnalyticsError):
    pass

class SnapshotSourceError(AnalyticsError):
    pass
