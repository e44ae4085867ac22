def surrogatepass(code):
    return code.encode('utf-16', 'surrogatepass').decode('utf-16')

# Arrows
arrow_down = '\u2193'
arrow_up   = '\u2191'

# Status
icon_spacer = '  '

# Alerts
md_alert = surrogatepass('\udb80\udc26')

# Network
md_network = surrogatepass('\udb81\udef3')
