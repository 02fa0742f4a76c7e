"""胶囊旅舍前台系统"""
